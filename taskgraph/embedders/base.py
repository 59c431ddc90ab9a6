from typing import Literal, Protocol

import numpy as np

InputType = Literal["document", "query"]


class Embedder(Protocol):
    def embed(self, text: str, input_type: InputType = "document") -> np.ndarray: ...
