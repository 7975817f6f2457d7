"""Resolution of compression algorithms into uniform async callables."""

from __future__ import annotations

import asyncio
import inspect
import zlib
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from functools import partial
from typing import Any

import brotli

from assetpress.core.options import AlgorithmFunction, ConfigurationError

BROTLI_MAX_QUALITY = 11

_ZLIB_COMPRESS_OPTIONS = frozenset({"level", "window_bits", "mem_level", "strategy"})
_ZLIB_DECOMPRESS_OPTIONS = frozenset({"window_bits"})
_BROTLI_COMPRESS_OPTIONS = frozenset({"quality", "lgwin", "lgblock", "mode"})
_BROTLI_MODES = {
    "generic": brotli.MODE_GENERIC,
    "text": brotli.MODE_TEXT,
    "font": brotli.MODE_FONT,
}


def _zlib_compress(framing: int, data: bytes, options: Mapping[str, Any]) -> bytes:
    window_bits = int(options.get("window_bits", zlib.MAX_WBITS))
    compressor = zlib.compressobj(
        int(options.get("level", zlib.Z_DEFAULT_COMPRESSION)),
        zlib.DEFLATED,
        _frame(framing, window_bits),
        int(options.get("mem_level", zlib.DEF_MEM_LEVEL)),
        int(options.get("strategy", zlib.Z_DEFAULT_STRATEGY)),
    )
    return compressor.compress(data) + compressor.flush()


def _zlib_decompress(framing: int, data: bytes, options: Mapping[str, Any]) -> bytes:
    window_bits = int(options.get("window_bits", zlib.MAX_WBITS))
    return zlib.decompress(data, _frame(framing, window_bits))


def _frame(framing: int, window_bits: int) -> int:
    # zlib encodes the container in the sign and offset of wbits
    if framing < 0:
        return -window_bits
    return framing + window_bits


def _brotli_compress(data: bytes, options: Mapping[str, Any]) -> bytes:
    kwargs = dict(options)
    mode = kwargs.get("mode")
    if isinstance(mode, str):
        try:
            kwargs["mode"] = _BROTLI_MODES[mode]
        except KeyError as exc:
            raise ValueError(f"Unsupported brotli mode: {mode!r}") from exc
    return brotli.compress(data, **kwargs)


def _brotli_decompress(data: bytes, options: Mapping[str, Any]) -> bytes:
    return brotli.decompress(data)


@dataclass(frozen=True, slots=True)
class _Builtin:
    function: Callable[[bytes, Mapping[str, Any]], bytes]
    accepted_options: frozenset[str]
    defaults: Mapping[str, Any] = field(default_factory=dict)


BUILTIN_ALGORITHMS: dict[str, _Builtin] = {
    "gzip": _Builtin(
        partial(_zlib_compress, 16), _ZLIB_COMPRESS_OPTIONS, {"level": zlib.Z_BEST_COMPRESSION}
    ),
    "deflate": _Builtin(
        partial(_zlib_compress, 0), _ZLIB_COMPRESS_OPTIONS, {"level": zlib.Z_BEST_COMPRESSION}
    ),
    "deflateRaw": _Builtin(
        partial(_zlib_compress, -1), _ZLIB_COMPRESS_OPTIONS, {"level": zlib.Z_BEST_COMPRESSION}
    ),
    "brotliCompress": _Builtin(
        _brotli_compress, _BROTLI_COMPRESS_OPTIONS, {"quality": BROTLI_MAX_QUALITY}
    ),
    "gunzip": _Builtin(partial(_zlib_decompress, 16), _ZLIB_DECOMPRESS_OPTIONS),
    "inflate": _Builtin(partial(_zlib_decompress, 0), _ZLIB_DECOMPRESS_OPTIONS),
    "inflateRaw": _Builtin(partial(_zlib_decompress, -1), _ZLIB_DECOMPRESS_OPTIONS),
    "unzip": _Builtin(partial(_zlib_decompress, 32), _ZLIB_DECOMPRESS_OPTIONS),
    "brotliDecompress": _Builtin(_brotli_decompress, frozenset()),
}


def to_bytes(result: Any) -> bytes:
    """Normalize whatever an algorithm returned into ``bytes``."""

    if isinstance(result, bytes):
        return result
    if isinstance(result, str):
        return result.encode("utf-8")
    if isinstance(result, (bytearray, memoryview)) or hasattr(result, "__bytes__"):
        return bytes(result)
    try:
        return bytes(memoryview(result))
    except TypeError:
        pass
    if isinstance(result, Iterable):
        return bytes(result)
    raise TypeError(f"Compression result of type {type(result).__name__} is not byte-like")


@dataclass(frozen=True, slots=True)
class NamedAlgorithm:
    """A built-in algorithm selected by name."""

    name: str
    function: Callable[[bytes, Mapping[str, Any]], bytes]
    options: Mapping[str, Any]

    @property
    def identity(self) -> str:
        return self.name

    async def compress(self, buffer: bytes) -> bytes:
        result = await asyncio.to_thread(self.function, buffer, self.options)
        return to_bytes(result)


@dataclass(frozen=True, slots=True)
class CustomAlgorithm:
    """A caller supplied ``(buffer, options)`` function, sync or async."""

    function: AlgorithmFunction
    options: Mapping[str, Any]

    @property
    def identity(self) -> AlgorithmFunction:
        return self.function

    async def compress(self, buffer: bytes) -> bytes:
        if inspect.iscoroutinefunction(self.function):
            result = await self.function(buffer, self.options)
        else:
            result = await asyncio.to_thread(self.function, buffer, self.options)
            if inspect.isawaitable(result):
                result = await result
        return to_bytes(result)


Algorithm = NamedAlgorithm | CustomAlgorithm


def resolve_algorithm(
    algorithm: str | AlgorithmFunction,
    compression_options: Mapping[str, Any] | None = None,
) -> Algorithm:
    """Resolve an algorithm name or function; named defaults sit under caller options."""

    options = dict(compression_options or {})

    if not isinstance(algorithm, str):
        return CustomAlgorithm(function=algorithm, options=options)

    builtin = BUILTIN_ALGORITHMS.get(algorithm)
    if builtin is None:
        raise ConfigurationError(
            f'Algorithm "{algorithm}" is not found; expected one of {sorted(BUILTIN_ALGORITHMS)}'
        )

    unknown = sorted(set(options) - builtin.accepted_options)
    if unknown:
        raise ConfigurationError(
            f'Unsupported compression options for "{algorithm}": {", ".join(unknown)}'
        )

    return NamedAlgorithm(
        name=algorithm,
        function=builtin.function,
        options={**builtin.defaults, **options},
    )
