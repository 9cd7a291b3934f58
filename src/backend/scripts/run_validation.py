from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path


def _ensure_backend_on_path() -> None:
    backend_dir = Path(__file__).resolve().parents[1]
    if str(backend_dir) not in sys.path:
        sys.path.insert(0, str(backend_dir))


def _load_json(path: Path):
    with path.open(encoding="utf-8") as handle:
        return json.load(handle)


def build_context_from_capture_file(capture_path: Path, *, offline: bool = True):
    _ensure_backend_on_path()
    from adapters.capture import service_context_from_capture

    return service_context_from_capture(_load_json(capture_path), offline=offline)


def run_validation(ctx, *, settings=None, mode=None):
    _ensure_backend_on_path()
    from common.rules_engine.config import get_engine_settings
    from common.rules_engine.dispatcher import Dispatcher

    # Catalogue construction happens here; a RegistrationError aborts before any rule runs.
    dispatcher = Dispatcher(settings=settings or get_engine_settings())
    return dispatcher.run(ctx, mode=mode)


def exit_code_for(report) -> int:
    from common.rules_engine.models import OutcomeState

    if report.entries_in_state(OutcomeState.FAIL) or report.entries_in_state(OutcomeState.ENGINE_ERROR):
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Replay a captured OData interaction through the conformance rules and write a JSON report."
    )
    parser.add_argument("--capture", required=True, help="Path to a captured interaction JSON file.")
    parser.add_argument(
        "--mode",
        choices=("online", "offline"),
        default=None,
        help="Execution mode (defaults to CONFORMANCE_MODE, or offline for replayed captures).",
    )
    parser.add_argument("--max-workers", type=int, default=None, help="Parallel rule evaluations.")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-rule timeout in seconds (overrides CONFORMANCE_RULE_TIMEOUT_SECONDS).",
    )
    parser.add_argument("--output", default=None, help="Write the report JSON here instead of stdout.")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING).")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    _ensure_backend_on_path()
    from common.rules_engine.config import get_engine_settings
    from common.rules_engine.models import ExecutionMode

    settings = get_engine_settings()
    # Replayed captures run offline unless --mode or CONFORMANCE_MODE says otherwise.
    if args.mode:
        mode = ExecutionMode(args.mode.upper())
    elif "mode" in settings.model_fields_set:
        mode = settings.mode
    else:
        mode = ExecutionMode.OFFLINE

    overrides = {}
    if args.max_workers is not None:
        overrides["max_workers"] = args.max_workers
    if args.timeout is not None:
        overrides["rule_timeout_seconds"] = args.timeout
    if overrides:
        settings = settings.model_validate({**settings.model_dump(), **overrides})

    ctx = build_context_from_capture_file(Path(args.capture), offline=mode == ExecutionMode.OFFLINE)
    report = run_validation(ctx, settings=settings, mode=mode)

    payload = report.model_dump_json(indent=2)
    if args.output:
        out_path = Path(args.output)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(payload, encoding="utf-8")
        print(f"Wrote {out_path}")
    else:
        print(payload)
    return exit_code_for(report)


if __name__ == "__main__":
    raise SystemExit(main())
