from tests.fakes.fake_embedder import FakeEmbedder
from tests.fakes.fake_graph_store import FakeGraphStore
from tests.fakes.fake_similarity_store import FakeSimilarityStore

__all__ = ["FakeEmbedder", "FakeGraphStore", "FakeSimilarityStore"]
