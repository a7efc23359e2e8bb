from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from shopsync.adapters.shopify.client import ShopifyAPIError
from shopsync.domain.reconciliation import (
    PartialReconciliationError,
    ReconciliationResult,
    metafield_identity,
    reconcile_metafields,
)
from shopsync.domain.resources import ARTICLES, BLOGS, Nested

if TYPE_CHECKING:
    from tests.support.fake_shop import FakeShop, RunClient

ARTICLE = Nested(BLOGS, ARTICLES)

SERVER = [
    {"id": 11, "namespace": "a", "key": "x", "value": 1},
    {"id": 12, "namespace": "a", "key": "y", "value": 2},
]


@pytest.fixture
def article_shop(fake_shop: FakeShop) -> FakeShop:
    fake_shop.seed(("blogs",), [{"id": 1, "title": "News"}])
    fake_shop.seed(("blogs", "1", "articles"), [{"id": 5, "title": "Hello"}])
    fake_shop.seed(("articles", "5", "metafields"), SERVER)
    return fake_shop


def _reconcile(run_client: RunClient, content: dict[str, object]) -> ReconciliationResult:
    return run_client(lambda client: reconcile_metafields(client, ARTICLE, content))


def test_phases_run_resource_then_delete_then_update(
    article_shop: FakeShop, run_client: RunClient
) -> None:
    content = {
        "id": 5,
        "blog_id": 1,
        "title": "Updated",
        "metafields": [
            {"namespace": "a", "key": "x", "value": 9},
            {"namespace": "a", "key": "z", "value": 3},
        ],
    }

    result = _reconcile(run_client, content)

    assert article_shop.calls() == [
        ("GET", "/admin/articles/5/metafields.json"),
        ("PUT", "/admin/blogs/1/articles/5.json"),
        ("DELETE", "/admin/articles/5/metafields/12.json"),
        ("PUT", "/admin/articles/5/metafields/11.json"),
    ]
    resource_body = article_shop.requests[1].body
    assert resource_body["article"]["metafields"] == [{"namespace": "a", "key": "z", "value": 3}]
    assert result.completed == ["resource", "delete", "update"]

    stored = {
        metafield_identity(m): m["value"]
        for m in article_shop.items("articles", "5", "metafields")
    }
    assert stored == {"a.x": 9, "a.z": 3}
    assert article_shop.items("blogs", "1", "articles")[0]["title"] == "Updated"


def test_matching_metafields_only_touch_the_resource(
    article_shop: FakeShop, run_client: RunClient
) -> None:
    content = {
        "id": 5,
        "blog_id": 1,
        "metafields": [{k: v for k, v in m.items() if k != "id"} for m in SERVER],
    }

    result = _reconcile(run_client, content)

    assert article_shop.calls() == [
        ("GET", "/admin/articles/5/metafields.json"),
        ("PUT", "/admin/blogs/1/articles/5.json"),
    ]
    assert article_shop.requests[1].body["article"]["metafields"] == []
    assert result.diff is not None
    assert result.diff.is_empty


def test_content_without_metafields_is_a_plain_update(
    article_shop: FakeShop, run_client: RunClient
) -> None:
    result = _reconcile(run_client, {"id": 5, "blog_id": 1, "title": "Plain"})

    assert article_shop.calls() == [("PUT", "/admin/blogs/1/articles/5.json")]
    assert result.diff is None
    assert result.completed == ["resource"]


def test_failed_delete_reports_the_applied_phases(
    article_shop: FakeShop, run_client: RunClient
) -> None:
    article_shop.fail("DELETE", "/admin/articles/5/metafields/12.json")
    content = {
        "id": 5,
        "blog_id": 1,
        "metafields": [
            {"namespace": "a", "key": "x", "value": 9},
            {"namespace": "a", "key": "z", "value": 3},
        ],
    }

    with pytest.raises(PartialReconciliationError) as excinfo:
        _reconcile(run_client, content)

    error = excinfo.value
    assert error.phase == "delete"
    assert error.result.completed == ["resource"]
    assert isinstance(error.__cause__, ShopifyAPIError)
    # the resource phase already created the new metafield; the update never ran
    assert ("PUT", "/admin/articles/5/metafields/11.json") not in article_shop.calls()
    identities = {metafield_identity(m) for m in article_shop.items("articles", "5", "metafields")}
    assert identities == {"a.x", "a.y", "a.z"}


def test_failed_update_keeps_completed_deletes(
    article_shop: FakeShop, run_client: RunClient
) -> None:
    article_shop.fail("PUT", "/admin/articles/5/metafields/11.json", status=422)
    content = {"id": 5, "blog_id": 1, "metafields": [{"namespace": "a", "key": "x", "value": 9}]}

    with pytest.raises(PartialReconciliationError) as excinfo:
        _reconcile(run_client, content)

    assert excinfo.value.phase == "update"
    assert excinfo.value.result.completed == ["resource", "delete"]
    assert len(excinfo.value.result.deleted) == 1
    assert {m["id"] for m in article_shop.items("articles", "5", "metafields")} == {11}
