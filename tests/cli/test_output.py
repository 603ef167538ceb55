"""Tests for CLI output helpers."""

import json

from linkshelf.cli._output import print_document, print_documents, print_error, print_json


def test_print_json(capsys):
    print_json({"total_count": None, "items": []})
    assert json.loads(capsys.readouterr().out) == {"total_count": None, "items": []}


def test_print_documents_aligns_union_of_columns(capsys):
    print_documents([{"id": 1, "title": "Home"}, {"id": 22, "href": "https://x"}])
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].split() == ["id", "title", "href"]
    assert set(lines[1]) == {"-", " "}
    assert lines[2].split() == ["1", "Home"]
    assert lines[3].split() == ["22", "https://x"]
    assert lines[3].index("https://x") == lines[0].index("href")


def test_print_documents_empty_with_footer(capsys):
    print_documents([], footer="items 0--1/0")
    assert capsys.readouterr().out == "items 0--1/0\n"


def test_print_documents_empty(capsys):
    print_documents([])
    assert capsys.readouterr().out == ""


def test_print_document_text(capsys):
    print_document({"title": "Home", "sortBy": None})
    out = capsys.readouterr().out
    assert "title: Home" in out
    assert "sortBy: \n" in out


def test_print_document_json(capsys):
    print_document({"id": 3}, json_mode=True)
    assert json.loads(capsys.readouterr().out) == {"id": 3}


def test_print_error(capsys):
    print_error("boom")
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Error: boom" in captured.err
