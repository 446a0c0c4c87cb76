"""
Tests for SimulatedServer bookkeeping.
"""

from unittest.mock import Mock

from navcache.core import NO_PAGE
from navcache.simulation.messages import PageRequest
from navcache.simulation.server import SimulatedServer


def _request(request_id, page, from_page=NO_PAGE):
    return PageRequest(request_id=request_id, client_id=0, page=page, from_page=from_page)


def test_counts_accesses_per_page(orchestrator, timers):
    """Test every received request is tallied under its page."""
    server = SimulatedServer(orchestrator, timers, Mock(), processing_time=0.0)
    reply = Mock()

    for request_id, page in enumerate([3, 3, 4]):
        server.receive(_request(request_id, page), reply)

    assert server.requests_received == 3
    assert server.access_frequency == {3: 2, 4: 1}
    assert server.responses_generated == 0

    timers.run()

    assert server.responses_generated == 3
    assert reply.call_count == 3


def test_second_view_is_served_from_cache(orchestrator, timers):
    """Test a cached page is answered with the hit cost as delay."""
    server = SimulatedServer(orchestrator, timers, Mock(), processing_time=0.0)
    reply = Mock()

    assert server.mean_processing_delay() is None

    server.receive(_request(0, 3), reply)
    server.receive(_request(1, 3), reply)
    timers.run()

    responses = [call.args[0] for call in reply.call_args_list]
    assert [response.served_from_cache for response in responses] == [False, True]
    assert server.processing_delays == [0.0, orchestrator.config.cache_hit_cost]
    assert responses[1].ttl == orchestrator.config.content_ttl
