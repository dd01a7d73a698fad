#!/usr/bin/env python3
"""
CLI for prompt vault operations.

Usage:
    promptvault process  --input traces.json --output vaulted.json [--config vault.yaml]
    promptvault retrieve --ref '{"checksum":...,"uri":"promptvault://fs/..."}' [--out content.txt]
    promptvault verify   --ref 'vault://<sha256>'
    promptvault show-config [--config vault.yaml]
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .config.config_loader import VaultConfig
from .core.exceptions import (
    ChecksumMismatchError,
    MalformedReference,
    NotFoundError,
    VaultConfigError,
    VaultError,
)
from .core.logging import configure_logging
from .core.reference import decode
from .core.traces import Traces
from .processor.factory import create_processor, create_store
from .processor.sink import TracesSink


logger = logging.getLogger(__name__)


def load_config(args) -> VaultConfig:
    """Load config from --config, then apply --base-path."""
    overrides = {}
    if getattr(args, "base_path", None):
        overrides = {"storage": {"filesystem": {"base_path": args.base_path}}}
    return VaultConfig(
        config_path=Path(args.config) if args.config else None,
        overrides=overrides,
    )


def cmd_process(args) -> int:
    """Run a JSON traces file through the vault processor."""
    config = load_config(args)

    input_path = Path(args.input)
    if not input_path.exists():
        logger.error(f"Input file not found: {input_path}")
        return 1

    try:
        with open(input_path, "r", encoding="utf-8") as f:
            traces = Traces.from_dict(json.load(f))
    except json.JSONDecodeError as e:
        logger.error(f"Input file is not valid JSON: {input_path}: {e}")
        return 2

    sink = TracesSink()
    processor = create_processor(config, sink)
    processor.start()
    try:
        processor.process_batch(traces)
    finally:
        processor.shutdown()

    output = json.dumps(traces.to_dict(), indent=2, ensure_ascii=False)
    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(output + "\n", encoding="utf-8")
        logger.info(f"Wrote {traces.span_count()} spans to {output_path}")
    else:
        print(output)

    stats = processor.stats()
    logger.info(
        f"Vaulted {stats['vaulted']} attributes "
        f"({stats['failed']} failed, {stats['skipped_below_threshold']} below threshold)"
    )
    return 0


def cmd_retrieve(args) -> int:
    """Resolve a reference and write its verified content."""
    config = load_config(args)

    with create_store(config) as store:
        data = store.retrieve(decode(args.ref))

    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_bytes(data)
        logger.info(f"Wrote {len(data)} bytes to {out_path}")
    else:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
    return 0


def cmd_verify(args) -> int:
    """Check that a reference resolves and its checksum matches."""
    config = load_config(args)
    ref = decode(args.ref)

    with create_store(config) as store:
        data = store.retrieve(ref)

    if ref.verification_available:
        print(f"OK {ref.uri} ({len(data)} bytes, sha256={ref.checksum})")
    else:
        print(f"FOUND {ref.uri} ({len(data)} bytes, no checksum recorded; not verified)")
    return 0


def cmd_show_config(args) -> int:
    """Print the effective configuration."""
    config = load_config(args)
    print(config.to_yaml(), end="")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="promptvault",
        description="Offload telemetry attribute content to a verifiable vault",
    )
    parser.add_argument("--config", help="Path to YAML config file")
    parser.add_argument("--base-path", help="Override storage.filesystem.base_path")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--structured-logs", action="store_true", help="Emit JSON log lines")

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_process = subparsers.add_parser("process", help="Vault attributes in a traces JSON file")
    p_process.add_argument("--input", required=True, help="Traces JSON file")
    p_process.add_argument("--output", help="Output file (default: stdout)")
    p_process.set_defaults(func=cmd_process)

    p_retrieve = subparsers.add_parser("retrieve", help="Fetch vaulted content by reference")
    p_retrieve.add_argument("--ref", required=True, help="Encoded reference")
    p_retrieve.add_argument("--out", help="Output file (default: stdout)")
    p_retrieve.set_defaults(func=cmd_retrieve)

    p_verify = subparsers.add_parser("verify", help="Verify vaulted content against its reference")
    p_verify.add_argument("--ref", required=True, help="Encoded reference")
    p_verify.set_defaults(func=cmd_verify)

    p_show = subparsers.add_parser("show-config", help="Print the effective configuration")
    p_show.set_defaults(func=cmd_show_config)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        structured=args.structured_logs,
    )

    try:
        return args.func(args)
    except (ChecksumMismatchError, NotFoundError) as e:
        logger.error(str(e))
        return 1
    except (MalformedReference, VaultConfigError, FileNotFoundError) as e:
        logger.error(str(e))
        return 2
    except VaultError as e:
        logger.error(f"Vault error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
