import re
import zlib

import numpy as np

from taskgraph.embedders.base import Embedder, InputType


class FakeEmbedder(Embedder):
    """Fake embedder that hashes lowercase words into a fixed-size bag-of-words vector."""

    def __init__(self, dimensions: int = 64) -> None:
        self.dimensions = dimensions
        self.calls: list[tuple[str, InputType]] = []

    def embed(self, text: str, input_type: InputType = "document") -> np.ndarray:
        self.calls.append((text, input_type))
        vector = np.zeros(self.dimensions, dtype=np.float32)
        for word in re.findall(r"[a-z0-9]+", text.lower()):
            vector[zlib.crc32(word.encode()) % self.dimensions] += 1.0
        return vector
