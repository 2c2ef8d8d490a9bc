"""
Token estimation strategies used for the client-side token budget
"""

import math
from typing import Protocol

import tiktoken


class TokenEstimator(Protocol):
    def estimate(self, text: str) -> int:
        ...


class CharacterRatioEstimator:
    """Roughly four characters per token for English text"""

    def __init__(self, chars_per_token: int = 4):
        self.chars_per_token = chars_per_token

    def estimate(self, text: str) -> int:
        return math.ceil(len(text) / self.chars_per_token)


class TiktokenEstimator:
    """Exact token count with the model's BPE encoding"""

    def __init__(self, model: str = "gpt-4"):
        self.model = model
        self._tokenizer = None

    def _get_tokenizer(self):
        """Get tiktoken encoder for token counting"""
        if self._tokenizer is None:
            try:
                self._tokenizer = tiktoken.encoding_for_model(self.model)
            except KeyError:
                self._tokenizer = tiktoken.get_encoding("cl100k_base")
        return self._tokenizer

    def estimate(self, text: str) -> int:
        # Special-token text in user input is counted as ordinary text
        return len(self._get_tokenizer().encode(text, disallowed_special=()))


def get_token_estimator(name: str, model: str = "gpt-4") -> TokenEstimator:
    """Build the estimator selected by ``AI_TOKEN_ESTIMATOR``"""
    if name == "tiktoken":
        return TiktokenEstimator(model)
    if name == "chars":
        return CharacterRatioEstimator()
    raise ValueError(f"Unknown token estimator: {name}")
