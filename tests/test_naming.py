"""Tests for derived filenames and relation names."""

from __future__ import annotations

import pytest

from assetpress.core.naming import (
    DynamicTemplate,
    StaticTemplate,
    as_template,
    is_content_stable,
    path_parts,
    relation_name,
    render_filename,
)
from assetpress.core.options import PathData


def test_path_parts_split_name():
    parts = path_parts("static/js/app.min.js?v=1#top")

    assert parts == {
        "file": "static/js/app.min.js",
        "query": "?v=1",
        "fragment": "#top",
        "path": "static/js/",
        "base": "app.min.js",
        "name": "app.min",
        "ext": ".js",
    }


@pytest.mark.parametrize(
    "template,name,expected",
    [
        ("[path][base].gz", "app.js", "app.js.gz"),
        ("[path][base].gz", "static/app.js", "static/app.js.gz"),
        ("[path][name].br[ext]", "static/app.js", "static/app.br.js"),
        ("[file].gz[query]", "app.js?v=2", "app.js.gz?v=2"),
        ("gz/[file]", "app.js", "gz/app.js"),
        ("[\\base\\].gz", "app.js", "[base].gz"),
        ("[hash].gz", "app.js", "[hash].gz"),
    ],
)
def test_render_static_template(template, name, expected):
    assert render_filename(template, name) == expected


def test_dynamic_template_receives_path_data_and_is_interpolated():
    seen: list[PathData] = []

    def filename(data: PathData) -> str:
        seen.append(data)
        return "[path][base].custom"

    assert render_filename(filename, "dir/app.js") == "dir/app.js.custom"
    assert seen == [PathData(filename="dir/app.js")]


def test_as_template_tags_variants():
    assert isinstance(as_template("[base].gz"), StaticTemplate)
    assert isinstance(as_template(lambda data: "x"), DynamicTemplate)


def test_content_stable_only_for_static_name_templates():
    assert is_content_stable("[path][base].gz")
    assert is_content_stable("[name].gz")
    assert is_content_stable(StaticTemplate("[file].br"))
    assert not is_content_stable("bundle.gz")
    assert not is_content_stable(lambda data: "[base].gz")


def test_relation_names_for_named_algorithms():
    assert relation_name("gzip", "[path][base].gz") == "gzipped"
    assert relation_name("brotliCompress", "[path][base].br") == "brotliCompressed"
    assert relation_name("deflate", "[path][base].gz") == "deflateed"


def test_relation_name_for_custom_algorithm_uses_filename_extension():
    def zstd(buffer, options):
        return buffer

    assert relation_name(zstd, "[path][base].zst?v=1") == "zsted"


def test_relation_name_for_custom_algorithm_and_filename_is_stable_hash():
    def zstd(buffer, options):
        return buffer

    def filename(data):
        return "[path][base].zst"

    first = relation_name(zstd, filename)

    assert first.startswith("compression-function-")
    assert first == relation_name(zstd, filename)
    assert len(first) == len("compression-function-") + 32
