"""
xxh64 - XXH64 non-cryptographic 64-bit hash

Bit-compatible with the reference XXH64 algorithm. Not a cryptographic hash:
use it for checksums, deduplication keys and hash-table fingerprints.

Usage:
    from xxh64 import hash64, XXH64, hash_to_int64

    h = hash64(b"Hello, World!")
    h = hash64(b"Hello", 12345)

    hasher = XXH64(seed=12345)
    hasher.update(b"Hel")
    hasher.update(b"lo")
    h = hasher.intdigest()

    v = hash_to_int64(None)  # None in, None out

Command line:
    python -m xxh64 [--seed N] [FILE ...]
"""

import argparse
import logging
import struct
import sys
from typing import Optional

logger = logging.getLogger(__name__)

PRIME64_1 = 0x9E3779B185EBCA87
PRIME64_2 = 0xC2B2AE3D27D4EB4F
PRIME64_3 = 0x165667B19E3779F9
PRIME64_4 = 0x85EBCA77C2B2AE63
PRIME64_5 = 0x27D4EB2F165667C5

STRIPE_LEN = 32

_MASK64 = 0xFFFFFFFFFFFFFFFF
_SIGN64 = 1 << 63

_READ_CHUNK = 64 * 1024


def _rotl(x: int, r: int) -> int:
    """Rotate a 64-bit value left by r bits"""
    return ((x << r) & _MASK64) | (x >> (64 - r))


def _read64(data, offset: int = 0) -> int:
    """Read little-endian uint64"""
    return struct.unpack_from('<Q', data, offset)[0]


def _read32(data, offset: int = 0) -> int:
    """Read little-endian uint32"""
    return struct.unpack_from('<I', data, offset)[0]


def _round(acc: int, lane: int) -> int:
    """Fold one 8-byte lane into an accumulator"""
    acc = (acc + lane * PRIME64_2) & _MASK64
    return (_rotl(acc, 31) * PRIME64_1) & _MASK64


def _merge_round(acc: int, value: int) -> int:
    """Fold a finished accumulator into the running result"""
    acc ^= _round(0, value)
    return (acc * PRIME64_1 + PRIME64_4) & _MASK64


def _converge(v1: int, v2: int, v3: int, v4: int) -> int:
    """Combine the four stripe accumulators into a single result"""
    result = (_rotl(v1, 1) + _rotl(v2, 7) + _rotl(v3, 12) + _rotl(v4, 18)) & _MASK64
    result = _merge_round(result, v1)
    result = _merge_round(result, v2)
    result = _merge_round(result, v3)
    return _merge_round(result, v4)


def _finalize(result: int, data, offset: int) -> int:
    """Absorb data[offset:] (less than one stripe) and avalanche the result"""
    length = len(data)

    while offset + 8 <= length:
        lane = (_read64(data, offset) * PRIME64_2) & _MASK64
        result ^= (_rotl(lane, 31) * PRIME64_1) & _MASK64
        result = (_rotl(result, 27) * PRIME64_1 + PRIME64_4) & _MASK64
        offset += 8

    while offset + 4 <= length:
        result ^= (_read32(data, offset) * PRIME64_1) & _MASK64
        result = (_rotl(result, 23) * PRIME64_2 + PRIME64_3) & _MASK64
        offset += 4

    while offset < length:
        result ^= (data[offset] * PRIME64_5) & _MASK64
        result = (_rotl(result, 11) * PRIME64_1) & _MASK64
        offset += 1

    result ^= result >> 33
    result = (result * PRIME64_2) & _MASK64
    result ^= result >> 29
    result = (result * PRIME64_3) & _MASK64
    result ^= result >> 32
    return result


def hash64(data, seed: int = 0) -> int:
    """Compute XXH64 of a bytes-like object with an optional 64-bit seed"""
    data = memoryview(data).cast("B")
    length = len(data)
    seed &= _MASK64
    offset = 0

    if length >= STRIPE_LEN:
        v1 = (seed + PRIME64_1 + PRIME64_2) & _MASK64
        v2 = (seed + PRIME64_2) & _MASK64
        v3 = seed
        v4 = (seed - PRIME64_1) & _MASK64

        while offset + STRIPE_LEN <= length:
            v1 = _round(v1, _read64(data, offset))
            v2 = _round(v2, _read64(data, offset + 8))
            v3 = _round(v3, _read64(data, offset + 16))
            v4 = _round(v4, _read64(data, offset + 24))
            offset += STRIPE_LEN

        result = _converge(v1, v2, v3, v4)
    else:
        result = (seed + PRIME64_5) & _MASK64

    result = (result + length) & _MASK64
    return _finalize(result, data, offset)


class XXH64:
    """
    Incremental XXH64 hasher.

    Feeding the input in any number of update() calls yields the same digest
    as hash64() over the concatenated bytes. Full stripes are folded into the
    accumulators as they arrive; only the sub-stripe tail is buffered.
    """

    __slots__ = ["_seed", "_v1", "_v2", "_v3", "_v4", "_total_len", "_memory"]
    name = "xxh64"
    digest_size = 8
    block_size = STRIPE_LEN

    def __init__(self, data=b"", seed: int = 0):
        self._seed = seed & _MASK64
        self.reset()
        self.update(data)

    @property
    def seed(self) -> int:
        return self._seed

    def reset(self) -> None:
        """Return to the empty state, keeping the seed"""
        seed = self._seed
        self._v1 = (seed + PRIME64_1 + PRIME64_2) & _MASK64
        self._v2 = (seed + PRIME64_2) & _MASK64
        self._v3 = seed
        self._v4 = (seed - PRIME64_1) & _MASK64
        self._total_len = 0
        self._memory = b""

    def update(self, data) -> None:
        """Absorb a bytes-like chunk"""
        data = memoryview(data).cast("B").tobytes()
        self._total_len += len(data)

        buf = self._memory + data if self._memory else data
        length = len(buf)
        if length < STRIPE_LEN:
            self._memory = buf
            return

        v1, v2, v3, v4 = self._v1, self._v2, self._v3, self._v4
        offset = 0
        while offset + STRIPE_LEN <= length:
            v1 = _round(v1, _read64(buf, offset))
            v2 = _round(v2, _read64(buf, offset + 8))
            v3 = _round(v3, _read64(buf, offset + 16))
            v4 = _round(v4, _read64(buf, offset + 24))
            offset += STRIPE_LEN

        self._v1, self._v2, self._v3, self._v4 = v1, v2, v3, v4
        self._memory = buf[offset:]

    def intdigest(self) -> int:
        """Digest of everything absorbed so far, as an unsigned int"""
        if self._total_len >= STRIPE_LEN:
            result = _converge(self._v1, self._v2, self._v3, self._v4)
        else:
            result = (self._seed + PRIME64_5) & _MASK64

        result = (result + self._total_len) & _MASK64
        return _finalize(result, self._memory, 0)

    def digest(self) -> bytes:
        """Canonical (big-endian) 8-byte digest"""
        return struct.pack('>Q', self.intdigest())

    def hexdigest(self) -> str:
        """Digest as 16 lowercase hex digits"""
        return f"{self.intdigest():016x}"

    def copy(self) -> "XXH64":
        """Independent snapshot of the current state"""
        other = XXH64.__new__(XXH64)
        other._seed = self._seed
        other._v1, other._v2, other._v3, other._v4 = self._v1, self._v2, self._v3, self._v4
        other._total_len = self._total_len
        other._memory = self._memory
        return other


def to_int64(value: int) -> int:
    """Reinterpret an unsigned 64-bit value as signed two's complement"""
    value &= _MASK64
    return value - (1 << 64) if value & _SIGN64 else value


def hash_to_int64(data: Optional[bytes]) -> Optional[int]:
    """Hash for hosts that only store signed 64-bit integers. None in, None out."""
    if data is None:
        return None
    return to_int64(hash64(data))


# (input, seed, digest) checked by --self-test
_KNOWN_VECTORS = (
    (b"", 0, 0xEF46DB3751D8E999),
    (b"\x00", 0, 0xE934A84ADB052768),
    (b"abc", 0, 0x44BC2CF5AD770999),
    (b"xxhash", 0, 0x32DD38952C4BC720),
    (b"The quick brown fox jumps over the lazy dog", 0, 0x0B242D361FDA71BC),
    (bytes(32), 0, 0xF6E9BE5D70632CF5),
    (bytes(32), 1, 0x79E8258A15B0FE62),
)


def _self_test() -> bool:
    """Check the known vectors, single-shot and byte-at-a-time"""
    ok = True
    for data, seed, expected in _KNOWN_VECTORS:
        got = hash64(data, seed)
        if got != expected:
            logger.error("hash64(%r, %d) = 0x%016x, expected 0x%016x", data, seed, got, expected)
            ok = False
        streamed = XXH64(seed=seed)
        for i in range(len(data)):
            streamed.update(data[i:i + 1])
        if streamed.intdigest() != expected:
            logger.error("streamed %r, seed %d: 0x%016x, expected 0x%016x",
                         data, seed, streamed.intdigest(), expected)
            ok = False
    return ok


def _hash_stream(stream, seed: int) -> str:
    """Hash a binary stream in fixed-size chunks"""
    hasher = XXH64(seed=seed)
    while True:
        chunk = stream.read(_READ_CHUNK)
        if not chunk:
            break
        hasher.update(chunk)
    return hasher.hexdigest()


def _parse_seed(text: str) -> int:
    """Parse a decimal or 0x-prefixed seed"""
    try:
        return int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid seed: {text!r}") from None


def main(argv=None) -> int:
    """Command line entry point; returns the exit status"""
    parser = argparse.ArgumentParser(prog="xxh64sum", description="Print XXH64 digests of files.")
    parser.add_argument("files", nargs="*", help="Files to hash; '-' or none reads standard input")
    parser.add_argument("--seed", type=_parse_seed, default=0, help="Hash seed, decimal or 0x-prefixed hex (default: 0)")
    parser.add_argument("--self-test", action="store_true", help="Check the built-in reference vectors and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
    )

    if args.self_test:
        if _self_test():
            print(f"xxh64 self-test: {len(_KNOWN_VECTORS)} vectors OK")
            return 0
        print("xxh64 self-test: FAILED")
        return 1

    status = 0
    for name in args.files or ["-"]:
        if name == "-":
            digest = _hash_stream(sys.stdin.buffer, args.seed)
        else:
            try:
                with open(name, "rb") as f:
                    digest = _hash_stream(f, args.seed)
            except OSError as e:
                logger.error("%s: %s", name, e.strerror or e)
                status = 1
                continue
        logger.debug("hashed %s with seed 0x%016x", name, args.seed & _MASK64)
        print(f"{digest}  {name}")
    return status


if __name__ == "__main__":
    sys.exit(main())
