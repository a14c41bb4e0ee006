from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, Optional

from .errors import InstallerError, StageFailed
from .install_config import load_install_config
from .lib.env import PATHS
from .logging_utils import DEFAULT_LOG_PATH, configure_logging, redact
from .pipeline import InstallContext, run_pipeline
from .plan import load_plan
from .state_store import ensure_defaults, load_state, save_state
from .steps import (
    ChrootConfigureStep,
    ConfigurePortageStep,
    FinalizeStep,
    InstallBaseImageStep,
    PreflightStep,
    ProvisionStorageStep,
    ResolveArtifactStep,
    ResolveTopologyStep,
)

logger = logging.getLogger(__name__)


DEFAULT_STATE_PATH = PATHS.state_default


def build_steps():
    return [
        PreflightStep(),
        ResolveTopologyStep(),
        ProvisionStorageStep(),
        ResolveArtifactStep(),
        InstallBaseImageStep(),
        ConfigurePortageStep(),
        ChrootConfigureStep(),
        FinalizeStep(),
    ]


def run(
    *,
    plan_path: str,
    config_path: Optional[str] = None,
    state_path: str = DEFAULT_STATE_PATH,
    log_path: str = DEFAULT_LOG_PATH,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    resume: bool = False,
    dry_run: bool = False,
    verbose: bool = False,
) -> Dict[str, Any]:
    """Run the installer pipeline, persisting state for resume."""

    actual_log_path = configure_logging(
        log_path=log_path,
        level=logging.DEBUG if verbose else logging.INFO,
    )

    plan = load_plan(plan_path)
    redact(plan.root_password, plan.user_password, plan.luks_passphrase)
    config = load_install_config(config_path)
    ctx = InstallContext(plan=plan, config=config, dry_run=dry_run or config.dry_run)

    # A fresh run starts from an empty record; only --resume reads the old one.
    state = ensure_defaults(load_state(state_path) if resume else {})
    state.setdefault("execution", {}).setdefault("paths", {})["log_path_requested"] = log_path
    state.setdefault("execution", {}).setdefault("paths", {})["log_path_actual"] = actual_log_path
    state["execution"]["dry_run"] = ctx.dry_run

    if ctx.dry_run:
        logger.info("Dry run: commands are logged, not executed")

    try:
        result = run_pipeline(
            ctx=ctx,
            state=state,
            steps=build_steps(),
            start_at=start_at,
            stop_after=stop_after,
            resume=resume,
        )
        state = result.state
        state.setdefault("execution", {}).setdefault("summary", {})["ran_steps"] = result.ran_steps
        state.setdefault("execution", {}).setdefault("summary", {})["skipped_steps"] = result.skipped_steps
        return state
    except StageFailed as e:
        logger.error("Installation failed at stage %s: %s", e.step_id, e.error)
        logger.debug("Failure detail", exc_info=e.error)
        state.setdefault("execution", {}).setdefault("errors", []).append(
            {
                "step": e.step_id,
                "type": type(e.error).__name__,
                "error": str(e.error),
            }
        )
        raise
    finally:
        save_state(state_path, state)


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="zroot-installer")
    p.add_argument("--plan", required=True, help="Path to the install plan (yaml)")
    p.add_argument("--config", default=None, help="Path to installer config (yaml)")
    p.add_argument("--state", default=DEFAULT_STATE_PATH, help="Path to installer state (json|yaml)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to installer log")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 40_resolve_artifact)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--resume", action="store_true", help="Skip steps already marked completed")
    p.add_argument("--dry-run", action="store_true", help="Log commands instead of running them")
    p.add_argument("--verbose", action="store_true", help="Debug logging")

    args = p.parse_args(argv)

    try:
        run(
            plan_path=args.plan,
            config_path=args.config,
            state_path=args.state,
            log_path=args.log,
            start_at=args.start_at,
            stop_after=args.stop_after,
            resume=args.resume,
            dry_run=args.dry_run,
            verbose=args.verbose,
        )
    except StageFailed:
        return 1
    except (InstallerError, FileNotFoundError, ValueError) as e:
        logger.error("Installation aborted: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
