from __future__ import annotations

import importlib
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

import pytest

from shopsync.domain.ensure import build_predicate, ensure, find_where
from shopsync.domain.reconciliation import ReconciliationResult
from shopsync.domain.resources import ARTICLES, BLOGS, PAGES, Nested, TopLevel

if TYPE_CHECKING:
    from tests.support.fake_shop import FakeShop, RunClient

ARTICLE = Nested(BLOGS, ARTICLES)


def test_find_where_requires_every_field() -> None:
    items = [{"id": 1, "title": "A", "handle": "a"}, {"id": 2, "title": "A", "handle": "b"}]

    assert find_where(items, {"title": "A", "handle": "b"}) == items[1]
    assert find_where(items, {"title": "A", "missing": None}) is None
    assert find_where([], {"title": "A"}) is None


def test_build_predicate() -> None:
    content = {"handle": "about", "title": "About"}

    assert build_predicate(["handle"], content) == {"handle": "about"}
    assert build_predicate("title", content) == {"title": "About"}
    assert build_predicate({"handle": "x"}, content) == {"handle": "x"}


def test_singular_ensure_creates_once_when_nothing_matches(
    fake_shop: FakeShop, run_client: RunClient
) -> None:
    fake_shop.seed(("blogs",), [{"title": "Other"}])

    created = run_client(lambda client: ensure(client, TopLevel(BLOGS), {"title": "Hello"}))

    assert fake_shop.calls("POST") == [("POST", "/admin/blogs.json")]
    assert fake_shop.requests[-1].body == {"blog": {"title": "Hello"}}
    assert created["title"] == "Hello"
    assert "id" in created


def test_singular_ensure_returns_the_existing_match(
    fake_shop: FakeShop, run_client: RunClient
) -> None:
    fake_shop.seed(("blogs",), [{"id": 3, "title": "Hello"}])

    found = run_client(lambda client: ensure(client, TopLevel(BLOGS), {"title": "Hello"}))

    assert found == {"id": 3, "title": "Hello"}
    assert fake_shop.calls("POST") == []


def test_singular_ensure_needs_a_mapping(run_client: RunClient) -> None:
    with pytest.raises(TypeError):
        run_client(lambda client: ensure(client, TopLevel(BLOGS), ["title"]))


def test_matching_content_is_updated_with_its_metafields(
    fake_shop: FakeShop, run_client: RunClient
) -> None:
    fake_shop.seed(("blogs", "1", "articles"), [{"id": 5, "handle": "hi", "title": "Old"}])
    content = {
        "handle": "hi",
        "title": "New",
        "metafields": [{"namespace": "seo", "key": "hidden", "value": 1}],
    }

    result = run_client(lambda client: ensure(client, ARTICLE, ["handle"], content, 1))

    assert isinstance(result, ReconciliationResult)
    assert fake_shop.calls("POST") == []
    assert ("PUT", "/admin/blogs/1/articles/5.json") in fake_shop.calls()
    assert fake_shop.items("blogs", "1", "articles")[0]["title"] == "New"
    assert [m["key"] for m in fake_shop.items("articles", "5", "metafields")] == ["hidden"]


def test_candidates_are_fetched_once_per_parent(
    fake_shop: FakeShop, run_client: RunClient
) -> None:
    fake_shop.seed(("blogs", "1", "articles"), [{"handle": "a"}, {"handle": "b"}])
    fake_shop.seed(("blogs", "2", "articles"), [{"handle": "a"}])
    content = [
        {"handle": "a", "title": "A1"},
        {"handle": "b", "title": "B1"},
        {"handle": "a", "title": "A2", "blog_id": 2},
        {"handle": "c", "title": "C1"},
    ]

    results = run_client(lambda client: ensure(client, ARTICLE, ["handle"], content, 1))

    count_calls = [path for method, path in fake_shop.calls("GET") if path.endswith("count.json")]
    assert count_calls == [
        "/admin/blogs/1/articles/count.json",
        "/admin/blogs/2/articles/count.json",
    ]
    assert fake_shop.calls("POST") == [("POST", "/admin/blogs/1/articles.json")]
    assert len(results) == 4
    assert isinstance(results[0], ReconciliationResult)
    assert results[3]["handle"] == "c"
    assert fake_shop.items("blogs", "2", "articles")[0]["title"] == "A2"


def test_content_whose_id_equals_the_parent_id_is_created(
    fake_shop: FakeShop, run_client: RunClient
) -> None:
    fake_shop.seed(("blogs", "1", "articles"), [{"id": 5, "title": "Same"}])

    run_client(lambda client: ensure(client, ARTICLE, ["title"], {"id": 1, "title": "Same"}, 1))

    assert fake_shop.calls("POST") == [("POST", "/admin/blogs/1/articles.json")]
    assert fake_shop.calls("PUT") == []


def test_top_level_list_mixes_updates_and_creates(
    fake_shop: FakeShop, run_client: RunClient
) -> None:
    fake_shop.seed(("pages",), [{"id": 8, "handle": "about", "title": "About"}])
    content = [
        {"handle": "about", "title": "About us"},
        {"handle": "contact", "title": "Contact"},
    ]

    results = run_client(lambda client: ensure(client, TopLevel(PAGES), "handle", content))

    assert fake_shop.calls("PUT") == [("PUT", "/admin/pages/8.json")]
    assert fake_shop.calls("POST") == [("POST", "/admin/pages.json")]
    assert results[0].resource == {"id": 8, "handle": "about", "title": "About us"}
    assert results[1]["handle"] == "contact"


def test_match_alias_is_built_at_import_time() -> None:
    module = importlib.import_module("shopsync.domain.ensure")

    assert module.Match == Mapping[str, Any] | Sequence[str]


def test_string_and_integer_parent_ids_share_candidates(
    fake_shop: FakeShop, run_client: RunClient
) -> None:
    fake_shop.seed(("blogs", "1", "articles"), [{"handle": "a"}])
    content = [{"handle": "a", "title": "A"}, {"handle": "b", "title": "B", "blog_id": 1}]

    run_client(lambda client: ensure(client, ARTICLE, ["handle"], content, "1"))

    count_calls = [path for _, path in fake_shop.calls("GET") if path.endswith("count.json")]
    assert count_calls == ["/admin/blogs/1/articles/count.json"]
    assert fake_shop.calls("POST") == [("POST", "/admin/blogs/1/articles.json")]
