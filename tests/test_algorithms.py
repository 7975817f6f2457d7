"""Tests for algorithm resolution and output normalization."""

from __future__ import annotations

import asyncio
import gzip
import zlib

import brotli
import pytest

from assetpress.core.algorithms import (
    CustomAlgorithm,
    NamedAlgorithm,
    resolve_algorithm,
    to_bytes,
)
from assetpress.core.options import ConfigurationError

PAYLOAD = b"body { color: red; }\n" * 200


@pytest.mark.asyncio
async def test_gzip_defaults_to_best_compression_and_round_trips():
    algorithm = resolve_algorithm("gzip")

    assert isinstance(algorithm, NamedAlgorithm)
    assert algorithm.options == {"level": 9}
    compressed = await algorithm.compress(PAYLOAD)
    assert gzip.decompress(compressed) == PAYLOAD


@pytest.mark.asyncio
async def test_gzip_output_is_deterministic():
    algorithm = resolve_algorithm("gzip")

    first = await algorithm.compress(PAYLOAD)
    second = await algorithm.compress(PAYLOAD)

    assert first == second


@pytest.mark.asyncio
async def test_deflate_and_raw_framing():
    deflate = await resolve_algorithm("deflate").compress(PAYLOAD)
    raw = await resolve_algorithm("deflateRaw").compress(PAYLOAD)

    assert zlib.decompress(deflate) == PAYLOAD
    assert zlib.decompress(raw, -zlib.MAX_WBITS) == PAYLOAD


@pytest.mark.asyncio
async def test_brotli_defaults_to_max_quality():
    algorithm = resolve_algorithm("brotliCompress")

    assert algorithm.options == {"quality": 11}
    assert brotli.decompress(await algorithm.compress(PAYLOAD)) == PAYLOAD


@pytest.mark.asyncio
async def test_unzip_detects_container():
    compressed = gzip.compress(PAYLOAD)
    assert await resolve_algorithm("unzip").compress(compressed) == PAYLOAD


def test_caller_options_win_over_defaults():
    algorithm = resolve_algorithm("gzip", {"level": 1, "mem_level": 9})

    assert algorithm.options == {"level": 1, "mem_level": 9}


def test_unknown_algorithm_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="nope"):
        resolve_algorithm("nope")


def test_unknown_option_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="quality"):
        resolve_algorithm("gzip", {"quality": 5})


@pytest.mark.asyncio
async def test_custom_sync_function_receives_options():
    seen = []

    def reverse(buffer, options):
        seen.append(dict(options))
        return buffer[::-1]

    algorithm = resolve_algorithm(reverse, {"flag": True})

    assert isinstance(algorithm, CustomAlgorithm)
    assert algorithm.identity is reverse
    assert await algorithm.compress(b"abc") == b"cba"
    assert seen == [{"flag": True}]


@pytest.mark.asyncio
async def test_custom_async_function_result_is_normalized():
    async def to_text(buffer, options):
        await asyncio.sleep(0)
        return "compressed"

    algorithm = resolve_algorithm(to_text)

    assert await algorithm.compress(b"abc") == b"compressed"


@pytest.mark.parametrize(
    "value,expected",
    [
        (b"raw", b"raw"),
        (bytearray(b"array"), b"array"),
        (memoryview(b"view"), b"view"),
        ("text", b"text"),
        ([104, 105], b"hi"),
    ],
)
def test_to_bytes_normalizes_byte_like_values(value, expected):
    assert to_bytes(value) == expected


def test_to_bytes_rejects_non_byte_values():
    with pytest.raises(TypeError):
        to_bytes(object())
