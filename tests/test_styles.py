"""Tests for the stylesheet and CSS compatibility transforms."""

from __future__ import annotations

from pathlib import Path

from designdeck.catalog import CssSubstitution, inline_stylesheets, transform_unsupported_css


def test_relative_stylesheet_is_inlined(tmp_path: Path) -> None:
    (tmp_path / "theme.css").write_text("body { color: red; }", encoding="utf-8")
    html = '<head><link rel="stylesheet" href="theme.css"></head>'

    result = inline_stylesheets(html, tmp_path)

    assert "<link" not in result
    assert "/* Inlined from theme.css */" in result
    assert "body { color: red; }" in result


def test_missing_stylesheet_keeps_link(tmp_path: Path) -> None:
    html = '<link rel="stylesheet" href="missing.css">'

    assert inline_stylesheets(html, tmp_path) == html


def test_absolute_urls_are_untouched(tmp_path: Path) -> None:
    html = (
        '<link rel="stylesheet" href="https://cdn.example.com/a.css">'
        '<link rel="stylesheet" href="//cdn.example.com/b.css">'
    )

    assert inline_stylesheets(html, tmp_path) == html


def test_non_stylesheet_links_are_untouched(tmp_path: Path) -> None:
    (tmp_path / "icon.css").write_text("x", encoding="utf-8")
    html = '<link rel="icon" href="icon.css">'

    assert inline_stylesheets(html, tmp_path) == html


def test_query_string_is_ignored_when_resolving(tmp_path: Path) -> None:
    (tmp_path / "theme.css").write_text(".a {}", encoding="utf-8")
    html = "<link href='theme.css?v=2' rel='stylesheet'>"

    assert ".a {}" in inline_stylesheets(html, tmp_path)


def test_known_oklch_colors_map_to_rgb() -> None:
    css = "a { color: oklch(1.0000 0 0); background: oklch(0.1500 0.0200 240.0000); }"

    result = transform_unsupported_css(css)

    assert result == "a { color: rgb(255, 255, 255); background: rgb(30, 30, 40); }"


def test_unknown_oklch_collapses_to_gray() -> None:
    assert transform_unsupported_css("oklch(0.42 0.1 33)") == "rgb(128, 128, 128)"


def test_relative_color_syntax_becomes_plain_variable() -> None:
    css = "color: rgb(from var(--accent) r g b);"

    assert transform_unsupported_css(css) == "color: var(--accent);"


def test_custom_substitution_table() -> None:
    table = [CssSubstitution("color-mix", "mix"), CssSubstitution(r"\bfoo\b", "bar", literal=False)]

    assert transform_unsupported_css("color-mix FOO", table) == "mix bar"
