"""Tests for the project resolvers."""

from __future__ import annotations

import io

from rich.console import Console

from autopilot.resolver import FixedResolver, InteractiveResolver
from autopilot.store import Collection

from conftest import FakeStore

CANDIDATES = [Collection("OPS", "Operations"), Collection("SEC", "Security")]


def test_fixed_resolver_prefers_configured_key():
    resolver = FixedResolver(FakeStore(), preferred="sec")
    assert resolver.choose_collection(CANDIDATES) == "SEC"


def test_fixed_resolver_falls_back_to_first():
    assert FixedResolver(FakeStore(), preferred="NOPE").choose_collection(CANDIDATES) == "OPS"
    assert FixedResolver(FakeStore()).choose_collection(CANDIDATES) == "OPS"
    assert FixedResolver(FakeStore()).choose_collection([]) is None


def test_fixed_resolver_lists_from_source():
    store = FakeStore(valid_projects=["A", "B"])
    assert [c.key for c in FixedResolver(store).list_collections()] == ["A", "B"]


def _interactive(monkeypatch, answer: str) -> tuple[InteractiveResolver, io.StringIO]:
    monkeypatch.setattr("autopilot.resolver.Prompt.ask", lambda *a, **k: answer)
    out = io.StringIO()
    return InteractiveResolver(FakeStore(), Console(file=out, width=120)), out


def test_interactive_by_number(monkeypatch):
    resolver, out = _interactive(monkeypatch, "2")
    assert resolver.choose_collection(CANDIDATES) == "SEC"
    assert "Security" in out.getvalue()


def test_interactive_by_key_is_uppercased(monkeypatch):
    resolver, _ = _interactive(monkeypatch, " new ")
    assert resolver.choose_collection(CANDIDATES) == "NEW"


def test_interactive_out_of_range_number_is_a_key(monkeypatch):
    resolver, _ = _interactive(monkeypatch, "9")
    assert resolver.choose_collection(CANDIDATES) == "9"


def test_interactive_empty_declines(monkeypatch):
    resolver, _ = _interactive(monkeypatch, "")
    assert resolver.choose_collection(CANDIDATES) is None
