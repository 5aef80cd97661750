"""
OpenAI-backed services used by the search and similarity pipeline.
"""
import json
import logging
import os
from typing import Any, Dict, List, Optional

import backoff
import openai
from openai import AsyncOpenAI

from newscompass.config import Config, SimilaritySettings, config as default_config
from newscompass.core.article import SimilarityVerdict

logger = logging.getLogger(__name__)

SYNONYM_INSTRUCTIONS = (
    "You are a linguist helping a news search engine. For the given word, list "
    "direct synonyms, closely related concepts, and common translations into other "
    "major languages. Prefer relevance over volume and return at most 15 terms. "
    'Respond with a JSON object of the form {"synonyms": ["..."]}. '
    "Return an empty list if nothing relevant exists."
)

SIMILARITY_INSTRUCTIONS = (
    "You are a news analyst. Decide whether two article excerpts report on the same "
    "core event or a very closely related topic. Judge meaning, entities and narrative "
    "rather than shared keywords; synonymous phrasing counts as overlap. "
    'Respond with a JSON object: {"isSimilar": bool, "confidence": number between 0 and 1, '
    '"reasoning": short string}.'
)


class OpenAIService:
    """
    Base class for services that ask an OpenAI chat model for a JSON answer.
    """
    def __init__(self, client: Optional[AsyncOpenAI] = None, cfg: Optional[Config] = None):
        self.cfg = cfg or default_config
        self._client = client
        self.model = self.cfg.get('openai.model', 'gpt-4o-mini')
        self.temperature = self.cfg.get('openai.temperature', 0.2)
        self.timeout = self.cfg.get('openai.timeout_seconds', 30)

    @property
    def client(self) -> AsyncOpenAI:
        """
        Lazy initialization of the OpenAI client.

        Returns:
            AsyncOpenAI: The API client
        """
        if self._client is None:
            self._client = AsyncOpenAI(api_key=os.getenv('OPENAI_API_KEY'), timeout=self.timeout)
        return self._client

    async def _complete_json(self, instructions: str, prompt: str) -> Dict[str, Any]:
        response = await self.client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": instructions},
                {"role": "user", "content": prompt},
            ],
        )
        content = response.choices[0].message.content or "{}"
        return json.loads(content)


class OpenAISynonymService(OpenAIService):
    """
    Looks up synonyms and related terms for a single search word.
    """
    @backoff.on_exception(backoff.expo, openai.RateLimitError, max_tries=3)
    async def _request(self, word: str) -> Dict[str, Any]:
        return await self._complete_json(SYNONYM_INSTRUCTIONS, f"Word: {word}")

    async def synonyms(self, word: str) -> List[str]:
        """
        Get synonyms for a word.

        Args:
            word: The word to expand

        Returns:
            List of synonyms, empty on blank input or any failure
        """
        if not word or not word.strip():
            return []
        try:
            data = await self._request(word.strip())
        except (openai.OpenAIError, json.JSONDecodeError) as e:
            logger.warning(f"Synonym generation failed for word '{word}': {e}")
            return []

        synonyms = data.get("synonyms") if isinstance(data, dict) else None
        if not isinstance(synonyms, list):
            return []
        return [s for s in synonyms if isinstance(s, str)]


class OpenAISimilarityClassifier(OpenAIService):
    """
    Decides whether two article texts describe the same event.
    """
    def __init__(self, client: Optional[AsyncOpenAI] = None, cfg: Optional[Config] = None):
        super().__init__(client=client, cfg=cfg)
        self.min_text_length = SimilaritySettings.from_config(self.cfg).classifier_min_text_length

    async def compare(self, text_a: str, text_b: str) -> SimilarityVerdict:
        """
        Compare two texts.

        Texts shorter than the minimum length never reach the model and get a
        not-similar verdict. API errors propagate to the caller.

        Args:
            text_a: First article text
            text_b: Second article text

        Returns:
            The classifier verdict
        """
        if len(text_a or "") < self.min_text_length or len(text_b or "") < self.min_text_length:
            return SimilarityVerdict(
                is_similar=False,
                confidence=0.0,
                reasoning="One or both texts are too short for reliable similarity assessment.",
            )

        data = await self._complete_json(
            SIMILARITY_INSTRUCTIONS,
            f"Article A:\n{text_a}\n\nArticle B:\n{text_b}",
        )

        confidence = data.get("confidence")
        if isinstance(confidence, (int, float)) and not isinstance(confidence, bool):
            confidence = min(1.0, max(0.0, float(confidence)))
        else:
            confidence = None

        reasoning = data.get("reasoning")
        return SimilarityVerdict(
            is_similar=bool(data.get("isSimilar", False)),
            confidence=confidence,
            reasoning=reasoning if isinstance(reasoning, str) else None,
        )
