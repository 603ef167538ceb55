"""CLI tests for the entity commands."""

from __future__ import annotations

import json

from linkshelf.cli import _exitcodes as ec
from tests.cli.conftest import invoke


def _json(runner, args, storage_uri):
    result = invoke(runner, ["--json"] + args, storage_uri)
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def test_version(runner) -> None:
    result = invoke(runner, ["--version"])
    assert result.exit_code == 0
    assert result.stdout.startswith("linkshelf ")


def test_create_and_get(runner, storage_uri) -> None:
    created = _json(
        runner, ["create", "Category", '{"title": "Work", "positionIdx": "2"}', "--owner", "5"],
        storage_uri,
    )
    assert created == {"id": 1}

    category = _json(runner, ["get", "Category", "1"], storage_uri)
    assert category["title"] == "Work"
    assert category["positionIdx"] == 2
    assert category["ownerId"] == 5
    assert category["created"] == category["updated"]


def test_get_text_output(runner, seeded_uri) -> None:
    result = invoke(runner, ["get", "Category", "1"], seeded_uri)
    assert result.exit_code == 0
    assert "title: Work" in result.stdout


def test_get_missing(runner, storage_uri) -> None:
    result = invoke(runner, ["get", "Category", "9"], storage_uri)
    assert result.exit_code == ec.NOT_FOUND
    assert "not found" in result.output


def test_unknown_kind(runner, storage_uri) -> None:
    result = invoke(runner, ["get", "Tag", "1"], storage_uri)
    assert result.exit_code == ec.CLIENT_ERROR
    assert "Unknown entity kind" in result.output


def test_query_json(runner, seeded_uri) -> None:
    payload = _json(
        runner,
        ["query", "Link", "--filter", "categoryId=1", "--sort", "-title", "--range", "0-9"],
        seeded_uri,
    )
    assert [item["title"] for item in payload["items"]] == ["link1", "link0"]
    assert payload["total_count"] == 2
    assert payload["content_range"] == "items 0-1/2"


def test_query_full_page(runner, seeded_uri) -> None:
    payload = _json(runner, ["query", "Link", "--range", "0-1"], seeded_uri)
    assert payload["total_count"] is None
    assert payload["content_range"] == "items 0-1/*"


def test_query_id_only(runner, seeded_uri) -> None:
    payload = _json(runner, ["query", "Link", "--id-only"], seeded_uri)
    assert payload["items"] == [{"id": 1}, {"id": 2}]


def test_query_text_output(runner, seeded_uri) -> None:
    result = invoke(runner, ["query", "Link", "-f", "title=link0"], seeded_uri)
    assert result.exit_code == 0
    lines = result.stdout.splitlines()
    assert "title" in lines[0]
    assert "link0" in lines[2]
    assert lines[-1] == "items 0-0/1"


def test_query_inequality(runner, seeded_uri) -> None:
    payload = _json(runner, ["query", "Category", "-f", "positionIdx=>=1"], seeded_uri)
    assert [item["id"] for item in payload["items"]] == [1]


def test_query_two_inequalities(runner, seeded_uri) -> None:
    result = invoke(runner, ["query", "Link", "-f", "title=>a", "-f", "href=<z"], seeded_uri)
    assert result.exit_code == ec.CLIENT_ERROR


def test_query_bad_sort(runner, seeded_uri) -> None:
    result = invoke(runner, ["query", "Link", "--sort", "title"], seeded_uri)
    assert result.exit_code == ec.CLIENT_ERROR
    assert "sortBy" in result.output


def test_query_bad_filter_syntax(runner, storage_uri) -> None:
    result = invoke(runner, ["query", "Link", "-f", "title"], storage_uri)
    assert result.exit_code == ec.USAGE_ERROR


def test_update(runner, seeded_uri) -> None:
    before = _json(runner, ["get", "Category", "1"], seeded_uri)
    payload = json.dumps({"title": "Home", "updated": before["updated"]})
    after = _json(runner, ["update", "Category", "1", payload], seeded_uri)
    assert after["title"] == "Home"
    assert after["updated"] > before["updated"]


def test_update_stale_token(runner, seeded_uri) -> None:
    payload = json.dumps({"title": "Home", "updated": "2000-01-01T00:00:00.000Z"})
    result = invoke(runner, ["update", "Category", "1", payload], seeded_uri)
    assert result.exit_code == ec.CLIENT_ERROR
    assert "does not match" in result.output


def test_update_without_token(runner, seeded_uri) -> None:
    result = invoke(runner, ["update", "Category", "1", '{"title": "Home"}'], seeded_uri)
    assert result.exit_code == ec.CLIENT_ERROR


def test_invalid_payload(runner, storage_uri) -> None:
    result = invoke(runner, ["create", "Category", "{not json"], storage_uri)
    assert result.exit_code == ec.USAGE_ERROR
    result = invoke(runner, ["create", "Category", "[1, 2]"], storage_uri)
    assert result.exit_code == ec.USAGE_ERROR


def test_link_needs_category(runner, storage_uri) -> None:
    result = invoke(runner, ["create", "Link", '{"title": "x"}'], storage_uri)
    assert result.exit_code == ec.CLIENT_ERROR
    assert "categoryId" in result.output

    result = invoke(runner, ["create", "Link", '{"title": "x", "categoryId": 3}'], storage_uri)
    assert result.exit_code == ec.NOT_FOUND


def test_delete_category_cascades(runner, seeded_uri) -> None:
    result = invoke(runner, ["delete", "Category", "1"], seeded_uri)
    assert result.exit_code == 0
    assert "Category:1" in result.stdout

    payload = _json(runner, ["query", "Link"], seeded_uri)
    assert payload["items"] == []
    assert invoke(runner, ["get", "Category", "1"], seeded_uri).exit_code == ec.NOT_FOUND


def test_init_dry_run(runner, storage_uri, tmp_path) -> None:
    payload = _json(runner, ["init", "--dry-run"], storage_uri)
    assert payload["backend"] == "sqlite"
    assert payload["status"] == "dry_run"
    assert not (tmp_path / "cli_test.db").exists()


def test_init(runner, storage_uri, tmp_path) -> None:
    payload = _json(runner, ["init"], storage_uri)
    assert payload["status"] == "initialized"
    assert (tmp_path / "cli_test.db").exists()


def test_storage_uri_from_environment(runner, storage_uri, monkeypatch) -> None:
    monkeypatch.setenv("LINKSHELF_STORAGE_URI", storage_uri)
    invoke(runner, ["create", "User", '{"name": "Ann"}'])
    assert _json(runner, ["get", "User", "1"], None)["name"] == "Ann"


def test_unsupported_storage_uri(runner) -> None:
    result = invoke(runner, ["query", "Link"], "datastore://project")
    assert result.exit_code == ec.USAGE_ERROR


def test_query_links_of_missing_category(runner, seeded_uri) -> None:
    result = invoke(runner, ["query", "Link", "-f", "categoryId=7"], seeded_uri)
    assert result.exit_code == ec.NOT_FOUND
    assert "Category 7 not found" in result.output


def test_get_out_of_range_id(runner, seeded_uri) -> None:
    result = invoke(runner, ["get", "Category", "99999999999999999999"], seeded_uri)
    assert result.exit_code == ec.CLIENT_ERROR
    assert "out of range" in result.output
