"""
Tests for SimulatedClient - Request Loop + Local Page Cache
"""

from unittest.mock import Mock

from navcache.core import PageContent
from navcache.simulation.client import SimulatedClient
from navcache.simulation.messages import PageResponse


def _client(timers, pages, cache_size=0, ttl=3600.0, cacheable=True, interval=1.0):
    """Client over a server that answers at once and a scripted page list."""
    server = Mock()

    def receive(request, reply):
        reply(
            PageResponse(
                request_id=request.request_id,
                client_id=request.client_id,
                page=request.page,
                content=PageContent(f"<p>{request.page}</p>"),
                ttl=ttl,
                cacheable=cacheable,
                completed_at=timers.now(),
            )
        )

    server.receive.side_effect = receive
    workload = Mock()
    workload.next_page.side_effect = list(pages)
    rng = Mock()
    rng.exponential.return_value = interval

    client = SimulatedClient(
        client_id=1,
        server=server,
        timer_service=timers,
        workload=workload,
        rng=rng,
        num_requests=len(pages),
        cache_size=cache_size,
    )
    return client, server


def _sent_pages(server):
    return [call.args[0].page for call in server.receive.call_args_list]


# ═══════════════════════════════════════════════════════════════
# REQUEST LOOP
# ═══════════════════════════════════════════════════════════════


def test_without_cache_every_view_is_sent(timers):
    """Test cache size 0 sends one request per page view."""
    client, server = _client(timers, [1, 1, 2])
    client.start()
    timers.run()

    assert _sent_pages(server) == [1, 1, 2]
    assert client.requests_sent == 3
    assert client.responses_received == 3
    assert client.local_hits == 0
    assert client.local_misses == 0
    assert client.finished


def test_requests_carry_previous_page(timers):
    """Test each request names the page the client came from."""
    client, server = _client(timers, [4, 7])
    client.start()
    timers.run()

    requests = [call.args[0] for call in server.receive.call_args_list]
    assert requests[1].from_page == 4


def test_zero_requests_never_schedules(timers):
    """Test an idle client is finished straight away."""
    client, _ = _client(timers, [])
    client.start()

    assert timers.pending() == 0
    assert client.finished


# ═══════════════════════════════════════════════════════════════
# LOCAL CACHE
# ═══════════════════════════════════════════════════════════════


def test_local_fifo_hit_and_eviction(timers):
    """Test repeat views hit locally and the oldest page is dropped first."""
    client, server = _client(timers, [1, 1, 2, 3, 1], cache_size=2)
    client.start()
    timers.run()

    assert _sent_pages(server) == [1, 2, 3, 1]
    assert client.local_hits == 1
    assert client.local_misses == 4
    assert client.page_views == 5
    assert client.cached_pages() == [3, 1]
    assert client.finished


def test_expired_local_copy_is_refetched(timers):
    """Test a copy older than its TTL is dropped and requested again."""
    client, server = _client(timers, [1, 1], cache_size=2, ttl=5.0, interval=10.0)
    client.start()
    timers.run()

    assert _sent_pages(server) == [1, 1]
    assert client.local_hits == 0


def test_fresh_local_copy_is_reused(timers):
    """Test a copy within its TTL is shown without a request."""
    client, server = _client(timers, [1, 1], cache_size=2, ttl=50.0, interval=10.0)
    client.start()
    timers.run()

    assert _sent_pages(server) == [1]
    assert client.local_hits == 1


def test_uncacheable_responses_are_not_kept(timers):
    """Test responses marked not cacheable never enter the local cache."""
    client, server = _client(timers, [1, 1], cache_size=2, cacheable=False)
    client.start()
    timers.run()

    assert _sent_pages(server) == [1, 1]
    assert client.cached_pages() == []


def test_local_hit_updates_current_page(timers):
    """Test the next request reports the locally shown page as its origin."""
    client, server = _client(timers, [1, 2, 1, 3], cache_size=4)
    client.start()
    timers.run()

    last = server.receive.call_args_list[-1].args[0]
    assert last.page == 3
    assert last.from_page == 1
