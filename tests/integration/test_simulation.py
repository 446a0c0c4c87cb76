"""
Integration tests: simulated clients browsing a predictively cached server.
"""

import json

import pytest

from navcache.cli.simulate import main
from navcache.config import EngineConfig
from navcache.core import InMemoryMetricsSink
from navcache.simulation import run_simulation


def _config(**overrides):
    data = {
        "log_level": "WARNING",
        "cache": {"capacity": 10},
        "simulation": {"num_clients": 3, "num_requests": 150, "num_pages": 50, "seed": 7},
    }
    for section, values in overrides.items():
        data.setdefault(section, {}).update(values)
    return EngineConfig.load(data)


# ============================================================
# SIMULATION RUNS
# ============================================================


def test_markov_simulation_learns_and_precaches():
    """Test a learnable workload produces predictions and hits."""
    metrics = InMemoryMetricsSink()
    report = run_simulation(_config(), metrics=metrics)

    assert report.requests_sent == 450
    assert report.responses_received == 450
    assert report.cache_hits + report.cache_misses == 450
    assert report.predictions_made > 0
    assert report.cache_hits > 0
    assert report.pattern_count > 0
    assert report.prediction_accuracy > 0
    assert report.cache_size <= 10
    assert report.p95_latency >= report.mean_latency > 0
    assert metrics.counter("predictions_made") == report.predictions_made
    assert metrics.counter("cache_hits") == report.cache_hits


def test_report_summarizes_server_load():
    """Test the access-frequency and utilization figures."""
    report = run_simulation(_config())

    assert report.page_views == 450
    assert report.responses_generated == 450
    assert report.client_cache_hits == 0
    assert 1 <= report.unique_pages_accessed <= 50
    assert report.max_access_frequency >= report.avg_access_frequency > 0
    assert report.avg_access_frequency == pytest.approx(450 / report.unique_pages_accessed)
    assert report.cache_utilization == pytest.approx(report.cache_size / 10)
    assert report.mean_processing_delay > 0


def test_disabled_cache_never_hits():
    """Test capacity 0 serves everything by generation."""
    report = run_simulation(_config(cache={"capacity": 0}))

    assert report.cache_hits == 0
    assert report.predictions_made == 0
    assert report.cache_size == 0
    assert report.pages_generated == 450
    assert report.cache_utilization == 0.0


def test_prediction_disabled():
    """Test no speculative generation without prediction."""
    report = run_simulation(_config(prefetch={"enable_prediction": False}))

    assert report.predictions_made == 0
    assert report.pages_generated == report.cache_misses


def test_client_caches_absorb_repeat_views():
    """Test local client hits never reach the server."""
    report = run_simulation(
        _config(simulation={"request_pattern": "hotspot", "client_cache_size": 5})
    )

    assert report.page_views == 450
    assert report.client_cache_hits > 0
    assert report.requests_sent + report.client_cache_hits == report.page_views
    assert report.client_cache_misses == report.requests_sent
    assert report.responses_received == report.requests_sent
    assert report.cache_hits + report.cache_misses == report.requests_sent


@pytest.mark.parametrize("policy", ["LRU", "LFU", "FIFO"])
def test_eviction_policies_complete(policy):
    """Test every eviction policy keeps the server cache within capacity."""
    report = run_simulation(_config(cache={"capacity": 5, "eviction_policy": policy}))

    assert report.responses_received == 450
    assert report.cache_size <= 5


def test_simulation_is_deterministic():
    """Test equal seeds produce equal reports."""
    config = _config(simulation={"num_requests": 40})

    assert run_simulation(config) == run_simulation(config)


@pytest.mark.parametrize("pattern", ["sequential", "hotspot", "random"])
def test_other_patterns_complete(pattern):
    """Test every request pattern runs to completion."""
    report = run_simulation(
        _config(simulation={"request_pattern": pattern, "num_requests": 60, "decay_every": 25})
    )

    assert report.responses_received == 180
    assert 0.0 <= report.hit_rate <= 1.0


# ============================================================
# CLI
# ============================================================


def test_cli_prints_report(capsys, restore_root_logger):
    """Test the CLI runs a simulation and prints JSON."""
    exit_code = main(
        ["--clients", "2", "--requests", "20", "--capacity", "5", "--log-level", "ERROR", "--metrics"]
    )

    assert exit_code == 0
    output = json.loads(capsys.readouterr().out)
    assert output["requests_sent"] == 40
    assert "metrics" in output


def test_cli_cache_flags(capsys, restore_root_logger):
    """Test the eviction policy and client cache flags reach the run."""
    exit_code = main(
        [
            "--clients", "2", "--requests", "30", "--pattern", "hotspot",
            "--eviction-policy", "LFU", "--client-cache", "4", "--log-level", "ERROR",
        ]
    )

    assert exit_code == 0
    output = json.loads(capsys.readouterr().out)
    assert output["page_views"] == 60
    assert output["requests_sent"] + output["client_cache_hits"] == 60


def test_cli_config_file(tmp_path, capsys, restore_root_logger):
    """Test command line flags override the config file."""
    path = tmp_path / "navcache.json"
    path.write_text(
        json.dumps({"log_level": "ERROR", "simulation": {"num_clients": 4, "num_requests": 5}}),
        encoding="utf-8",
    )

    assert main(["--config", str(path), "--requests", "3"]) == 0
    output = json.loads(capsys.readouterr().out)
    assert output["requests_sent"] == 12


def test_cli_rejects_bad_config(capsys, restore_root_logger):
    """Test invalid values exit with status 2."""
    assert main(["--capacity", "-3"]) == 2
    assert "Configuration error" in capsys.readouterr().err
