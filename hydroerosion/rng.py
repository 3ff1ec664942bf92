"""Deterministic splittable RNG streams for initial-state synthesis."""

from __future__ import annotations

from dataclasses import dataclass
import hashlib

import numpy as np


_NAMESPACE = "hydroerosion-v1"


def _mask64(seed: int) -> int:
    return int(seed) & ((1 << 64) - 1)


def derive_seed(parent_seed: int, key: str, *, namespace: str = _NAMESPACE) -> int:
    """Derive a child seed from a parent seed and a stage label."""

    payload = f"{namespace}:{_mask64(parent_seed)}:{key}".encode("utf-8")
    digest = hashlib.blake2b(payload, digest_size=8, person=b"erodefork").digest()
    return int.from_bytes(digest, byteorder="big", signed=False)


@dataclass(frozen=True)
class RngStream:
    """Immutable RNG stream, forked by stage name."""

    seed: int
    namespace: str = _NAMESPACE

    def fork(self, key: str) -> "RngStream":
        if not key:
            raise ValueError("fork key must be non-empty")
        return RngStream(derive_seed(self.seed, key, namespace=self.namespace), self.namespace)

    def generator(self) -> np.random.Generator:
        return np.random.Generator(np.random.PCG64(np.uint64(_mask64(self.seed))))
