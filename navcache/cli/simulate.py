"""
navcache Simulation CLI
=======================

Runs a predictive-caching simulation and prints the report as JSON.

Usage:
    python -m navcache.cli.simulate --clients 5 --requests 500 --pattern markov
"""

import argparse
import json
import sys
from typing import Optional, Sequence

from navcache.config import EngineConfig
from navcache.core.metrics import InMemoryMetricsSink
from navcache.exceptions import ConfigurationError
from navcache.logging_config import setup_logging
from navcache.simulation import RequestPattern, run_simulation


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="navcache-simulate",
        description="Simulate clients browsing a server with a predictive page cache.",
    )
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("--clients", type=int, help="Number of simulated clients")
    parser.add_argument("--requests", type=int, help="Requests per client")
    parser.add_argument(
        "--pattern",
        choices=[pattern.value for pattern in RequestPattern],
        help="Request pattern of the clients",
    )
    parser.add_argument("--capacity", type=int, help="Cache capacity (0 disables caching)")
    parser.add_argument(
        "--eviction-policy",
        choices=["LRU", "LFU", "FIFO"],
        help="Which cached page gives way when the server cache is full",
    )
    parser.add_argument("--client-cache", type=int, help="Per-client page cache size (0 disables)")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--no-prediction", action="store_true", help="Disable pre-caching")
    parser.add_argument("--log-level", help="Logging level (default from config)")
    parser.add_argument("--log-file", help="Also write JSON logs to this file")
    parser.add_argument("--metrics", action="store_true", help="Include raw metric counters")
    return parser


def load_config(args: argparse.Namespace) -> EngineConfig:
    """Defaults < config file < NAVCACHE_* environment < command line."""
    base = EngineConfig.from_file(args.config) if args.config else EngineConfig()
    config = EngineConfig.from_env(base=base)

    data = config.model_dump()
    overrides = {
        ("simulation", "num_clients"): args.clients,
        ("simulation", "num_requests"): args.requests,
        ("simulation", "request_pattern"): args.pattern,
        ("simulation", "seed"): args.seed,
        ("cache", "capacity"): args.capacity,
        ("cache", "eviction_policy"): args.eviction_policy,
        ("simulation", "client_cache_size"): args.client_cache,
    }
    for (section, field_name), value in overrides.items():
        if value is not None:
            data[section][field_name] = value
    if args.no_prediction:
        data["prefetch"]["enable_prediction"] = False
    if args.log_level:
        data["log_level"] = args.log_level

    return EngineConfig.load(data)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Execute the simulate command."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(config.log_level, args.log_file)

    metrics = InMemoryMetricsSink()
    report = run_simulation(config, metrics=metrics)

    output = report.to_dict()
    if args.metrics:
        output["metrics"] = metrics.snapshot()
    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
