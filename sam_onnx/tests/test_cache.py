import unittest

import numpy as np

from sam_onnx.cache import CachedEmbedding, CacheState, EmbeddingCache
from sam_onnx.errors import NoEmbeddingError
from sam_onnx.types import EmbeddingTensor, ShapeDescriptor


def _entry(value: float) -> CachedEmbedding:
    data = np.full((1, 2, 2, 2), value, dtype=np.float32)
    return CachedEmbedding(
        embedding=EmbeddingTensor(data=data, shape=ShapeDescriptor.of(data)),
        model_width=1024,
        model_height=1024,
        image_width=8,
        image_height=6,
    )


class EmbeddingCacheTest(unittest.TestCase):
    def test_starts_empty(self) -> None:
        cache = EmbeddingCache()

        self.assertEqual(cache.state, CacheState.EMPTY)
        self.assertFalse(cache.is_ready)
        with self.assertRaises(NoEmbeddingError):
            cache.require()

    def test_store_replaces_previous_entry(self) -> None:
        cache = EmbeddingCache()
        first = _entry(1.0)
        second = _entry(2.0)

        cache.store(first)
        cache.store(second)

        self.assertEqual(cache.state, CacheState.READY)
        self.assertIs(cache.require(), second)
        self.assertEqual(cache.require().shape, ShapeDescriptor((1, 2, 2, 2)))

    def test_invalidate_empties_slot(self) -> None:
        cache = EmbeddingCache()
        cache.store(_entry(1.0))

        cache.invalidate()
        cache.invalidate()

        self.assertEqual(cache.state, CacheState.EMPTY)
        with self.assertRaises(NoEmbeddingError):
            cache.require()


if __name__ == "__main__":
    unittest.main()
