from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Iterable, List

import yaml

from .codes import load_code_map
from .errors import ConfigError, DuplicateIdError, MissingFileError, PriceDiffError
from .export import write_report
from .ingest import load_snapshot
from .models import Item, RunConfig
from .rank import rank
from .reconcile import find_duplicate_ids, reconcile

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG = "config.yaml"


def load_config(path: str, required: bool = True) -> RunConfig:
    if not Path(path).is_file():
        if required:
            raise MissingFileError(path, "config file")
        LOGGER.debug("No config at %s, using defaults", path)
        return RunConfig()
    with open(path, "r", encoding="utf-8") as file:
        try:
            data = yaml.safe_load(file) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"cannot parse {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")
    return RunConfig.from_mapping(data)


def check_duplicates(config: RunConfig, label: str, items: List[Item]) -> None:
    if not config.reject_duplicate_ids:
        return
    duplicates = find_duplicate_ids(items)
    if duplicates:
        raise DuplicateIdError(label, duplicates)


def build_report(config: RunConfig, previous_path: str, current_path: str) -> int:
    for path in (previous_path, current_path):
        if not Path(path).is_file():
            raise MissingFileError(path, "snapshot")

    code_map = load_code_map(config.reference_path, config.raw_code_column, config.normalized_code_column)
    previous_items = load_snapshot(previous_path, code_map, config.header_rows)
    current_items = load_snapshot(current_path, code_map, config.header_rows)
    check_duplicates(config, "previous", previous_items)
    check_duplicates(config, "current", current_items)

    records = reconcile(current_items, previous_items, skip_violations=config.skip_pairing_violations)
    ranked = rank(records)
    LOGGER.info("Dropped %d unchanged items", len(records) - len(ranked))
    return write_report(config.output_path, ranked, config.output_headers, config.new_item_marker, config.blank_missing_prices)


def run(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Rank price changes between two price list snapshots")
    parser.add_argument("previous", help="Previous snapshot (.xlsx or .csv)")
    parser.add_argument("current", help="Current snapshot (.xlsx or .csv)")
    parser.add_argument("--config", help=f"YAML config (default: {DEFAULT_CONFIG} if present)")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO), format="%(levelname)s %(name)s: %(message)s")
    try:
        config = load_config(args.config or DEFAULT_CONFIG, required=args.config is not None)
        build_report(config, args.previous, args.current)
    except PriceDiffError as exc:
        LOGGER.error("%s", exc)
        raise SystemExit(f"error: {exc}") from exc
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
