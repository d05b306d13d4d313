from __future__ import annotations

import threading

from ripsim.model.link import Link, RouterInfo
from ripsim.model.routing import (
    INFINITY,
    NO_NEXT_HOP,
    TIMEOUT_TICKS,
    RoutingTable,
    saturating_add,
)

A, B, C, D = "10.0.0.1", "10.0.0.2", "10.0.0.3", "10.0.0.4"
ROUTERS = [RouterInfo(a) for a in (A, B, C, D)]


def _table(owner: str = A, links: list[Link] | None = None) -> RoutingTable:
    if links is None:
        links = [Link(A, B, 3)]
    return RoutingTable(owner, links, ROUTERS)


def test_seeding_direct_neighbor_and_unreachable_destinations() -> None:
    table = _table()
    assert table.destinations() == [B, C, D]
    assert A not in table
    assert table.metric(B) == 3
    assert table.next_hop(B) == B
    assert table.age(B) == 0
    for dst in (C, D):
        assert table.metric(dst) == INFINITY
        assert table.next_hop(dst) == NO_NEXT_HOP
        assert table.age(dst) == 0


def test_relax_installs_path_through_neighbor() -> None:
    table = _table()
    changed = table.relax(B, {A: 3, C: 1, D: INFINITY})
    assert changed == [C]
    assert table.metric(C) == 4
    assert table.next_hop(C) == B
    assert table.age(C) == 0
    assert table.metric(D) == INFINITY


def test_relax_never_raises_a_metric() -> None:
    table = _table(links=[Link(A, B, 5), Link(A, C, 2)])
    before = table.advertisement()
    table.relax(B, {C: 1, D: 9})
    after = table.advertisement()
    assert all(after[dst] <= before[dst] for dst in before)
    assert table.metric(C) == 2
    assert table.next_hop(C) == C
    assert table.metric(D) == 14


def test_relax_with_unreachable_neighbor_uses_advertised_metric_only() -> None:
    table = _table(links=[])
    assert table.metric(B) == INFINITY
    table.relax(B, {C: 7})
    assert table.metric(C) == 7
    assert table.next_hop(C) == B


def test_relax_accepts_a_neighbor_table() -> None:
    table_a = _table()
    table_b = RoutingTable(B, [Link(A, B, 3), Link(B, C, 2)], ROUTERS)
    table_a.relax(B, table_b)
    assert table_a.metric(C) == 5
    assert table_a.next_hop(C) == B


def test_route_expires_after_five_silent_ticks() -> None:
    table = _table()
    for _ in range(TIMEOUT_TICKS - 1):
        assert table.age_and_expire(B) is False
    assert table.age(B) == TIMEOUT_TICKS - 1
    assert table.metric(B) == 3

    assert table.age_and_expire(B) is True
    assert table.metric(B) == INFINITY
    assert table.next_hop(B) == NO_NEXT_HOP
    assert table.age(B) == TIMEOUT_TICKS


def test_refresh_on_fourth_tick_keeps_route() -> None:
    table = _table()
    for _ in range(4):
        table.age_and_expire(B)
    table.relax(B, {C: INFINITY})
    assert table.age(B) == 0
    table.age_and_expire(B)
    assert table.age(B) == 1
    assert table.metric(B) == 3
    assert table.next_hop(B) == B


def test_expired_route_keeps_counting() -> None:
    table = _table()
    for _ in range(TIMEOUT_TICKS):
        table.age_and_expire(B)
    assert table.age_and_expire(B) is False
    assert table.age(B) == TIMEOUT_TICKS + 1
    assert table.metric(B) == INFINITY


def test_relax_without_improvement_only_refreshes_neighbor_age() -> None:
    table = _table()
    table.relax(B, {C: 1})
    table.age_and_expire(B)
    table.age_and_expire(B)
    table.age_and_expire(C)
    before = table.route_view()

    assert table.relax(B, {C: 1, D: INFINITY}) == []
    assert table.route_view() == before
    assert table.age(B) == 0
    assert table.age(C) == 1


def test_unknown_destination_lookups_are_empty() -> None:
    table = _table()
    assert table.metric(A) == 0
    assert table.next_hop(A) is None
    assert table.age(A) == 0
    assert table.entry("192.168.1.1") is None
    assert table.age_and_expire("192.168.1.1") is False


def test_rows_render_infinity_marker() -> None:
    table = _table()
    rows = table.rows(tick=7)
    assert [row.destination for row in rows] == [B, C, D]
    assert rows[0].tick == 7
    assert rows[0].router == A
    assert rows[0].subnet_mask == "255.255.255.0"
    assert rows[0].metric_label == "3"
    assert rows[1].metric_label == "infinity"
    assert rows[1].to_dict()["next_hop"] == NO_NEXT_HOP


def test_saturating_add() -> None:
    assert saturating_add(2, 3) == 5
    assert saturating_add(INFINITY, 1) == INFINITY
    assert saturating_add(1, INFINITY) == INFINITY
    assert saturating_add(INFINITY - 1, 5) == INFINITY


def test_concurrent_relax_and_aging_keep_table_consistent() -> None:
    table = _table(links=[Link(A, B, 1), Link(A, C, 1)])
    errors: list[BaseException] = []

    def relax_loop() -> None:
        try:
            for i in range(500):
                table.relax(B, {C: 1, D: i % 7})
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    def age_loop() -> None:
        try:
            for _ in range(500):
                table.age_and_expire(B)
                table.rows(0)
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=relax_loop), threading.Thread(target=age_loop)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert table.destinations() == [B, C, D]
