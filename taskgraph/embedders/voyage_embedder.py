import numpy as np
import voyageai

from taskgraph.embedders.base import InputType


class VoyageEmbedder:
    def __init__(self, api_key: str, model: str = "voyage-3"):
        self.client = voyageai.Client(api_key=api_key)
        self.model = model

    def embed(self, text: str, input_type: InputType = "document") -> np.ndarray:
        result = self.client.embed(texts=[text], model=self.model, input_type=input_type)
        return np.array(result.embeddings[0], dtype=np.float32)
