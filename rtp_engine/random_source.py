"""
GOURMET FUN — Random Sources

Every game model draws through a RandomSource instead of touching a global
generator, so rounds can be seeded for tests and confined per task.

Contract: next() returns a float uniformly distributed in [0, 1).

Usage:
    from rtp_engine.random_source import SeededRandomSource, ProvablyFairSource

    rng = SeededRandomSource(42)
    u = rng.next()

    pf = ProvablyFairSource(server_seed="abc", client_seed="player-1", nonce=0)
    print(pf.server_seed_hash)   # share before the round
    u = pf.next()
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import os
import random
import secrets
import threading
from abc import ABC, abstractmethod
from typing import Iterable

from rtp_engine.errors import ConfigError, ExhaustedRandomSource

logger = logging.getLogger("gourmet.rng")


# ═══════════════════════════════════════════════════════════════
# Base
# ═══════════════════════════════════════════════════════════════

class RandomSource(ABC):
    """Uniform [0, 1) float stream."""

    @abstractmethod
    def next(self) -> float:
        ...


def randint(rng: RandomSource, lo: int, hi: int) -> int:
    """Integer in [lo, hi] inclusive, built only on rng.next()."""
    if hi < lo:
        raise ValueError(f"randint range is empty: [{lo}, {hi}]")
    return lo + int(rng.next() * (hi - lo + 1))


def derive_seed(base_seed: int, key: str) -> int:
    """Deterministic 32-bit seed for a (base seed, key) pair."""
    digest = hashlib.md5(f"{base_seed}:{key}".encode()).hexdigest()
    return int(digest[:8], 16)


# ═══════════════════════════════════════════════════════════════
# Implementations
# ═══════════════════════════════════════════════════════════════

class SeededRandomSource(RandomSource):
    """Mersenne Twister via random.Random. Reproducible for a given seed."""

    def __init__(self, seed: int | None = None):
        self.seed = seed
        self._rng = random.Random(seed)

    def next(self) -> float:
        return self._rng.random()


class SplitMixSource(RandomSource):
    """Splitmix64 PRNG — fast, deterministic, good distribution."""

    _MASK = 0xFFFFFFFFFFFFFFFF

    def __init__(self, seed: int = 0):
        self.state = seed & self._MASK

    def _next(self) -> int:
        self.state = (self.state + 0x9E3779B97F4A7C15) & self._MASK
        z = self.state
        z = ((z ^ (z >> 30)) * 0xBF58476D1CE4E5B9) & self._MASK
        z = ((z ^ (z >> 27)) * 0x94D049BB133111EB) & self._MASK
        return (z ^ (z >> 31)) & self._MASK

    def next(self) -> float:
        # Top 53 bits so the result is exactly representable and strictly < 1.0
        return (self._next() >> 11) / (1 << 53)


class SystemRandomSource(RandomSource):
    """OS entropy. Not reproducible; for live rounds."""

    def __init__(self):
        self._rng = secrets.SystemRandom()

    def next(self) -> float:
        return self._rng.random()


class SequenceRandomSource(RandomSource):
    """Replays a fixed list of draws, then raises ExhaustedRandomSource."""

    def __init__(self, values: Iterable[float]):
        self.values = [float(v) for v in values]
        for v in self.values:
            if not 0.0 <= v < 1.0:
                raise ConfigError(f"Scripted draw {v!r} is outside [0, 1)")
        self.position = 0

    @property
    def remaining(self) -> int:
        return len(self.values) - self.position

    def next(self) -> float:
        if self.position >= len(self.values):
            raise ExhaustedRandomSource(
                f"Scripted source exhausted after {len(self.values)} draws"
            )
        value = self.values[self.position]
        self.position += 1
        return value


class LockedRandomSource(RandomSource):
    """Mutex-guarded wrapper so one logical sequence can be shared by threads.

    Hold `lock` across a whole round when that round's draws must stay
    contiguous in the shared sequence.
    """

    def __init__(self, inner: RandomSource):
        self.inner = inner
        self.lock = threading.RLock()

    def next(self) -> float:
        with self.lock:
            return self.inner.next()


# ═══════════════════════════════════════════════════════════════
# Provably fair stream
# ═══════════════════════════════════════════════════════════════

class ProvablyFairSource(RandomSource):
    """HMAC-SHA256 chained stream for verifiable rounds.

    Each digest = HMAC-SHA256(server_seed, f"{client_seed}:{nonce}:{cursor}")
    yields eight floats, one per 8-hex-char segment (int / 2^32). The cursor
    advances when a digest is used up. Publish server_seed_hash before the
    round and reveal server_seed afterwards.
    """

    _SEGMENTS = 8

    def __init__(self, server_seed: str | None = None,
                 client_seed: str | None = None, nonce: int = 0):
        self.server_seed = server_seed or os.urandom(32).hex()
        self.client_seed = client_seed or os.urandom(16).hex()
        self.nonce = nonce
        self.cursor = 0
        self._digest = ""
        self._segment = self._SEGMENTS

    @property
    def server_seed_hash(self) -> str:
        return hashlib.sha256(self.server_seed.encode()).hexdigest()

    def digest_for(self, cursor: int) -> str:
        message = f"{self.client_seed}:{self.nonce}:{cursor}"
        return hmac.new(
            self.server_seed.encode(), message.encode(), hashlib.sha256,
        ).hexdigest()

    def next(self) -> float:
        if self._segment >= self._SEGMENTS:
            self._digest = self.digest_for(self.cursor)
            self.cursor += 1
            self._segment = 0
        offset = self._segment * 8
        self._segment += 1
        return int(self._digest[offset:offset + 8], 16) / 0x100000000

    def new_round(self) -> None:
        """Advance the nonce and restart the stream for the next round."""
        self.nonce += 1
        self.cursor = 0
        self._segment = self._SEGMENTS
        logger.debug("Provably fair source advanced to nonce %d", self.nonce)

    @staticmethod
    def verify_server_seed(server_seed: str, expected_hash: str) -> bool:
        computed = hashlib.sha256(server_seed.encode()).hexdigest()
        return hmac.compare_digest(computed, expected_hash)
