"""
LLM-based query reformulation.

This module uses an LLM to expand a user query into several semantically
equivalent search queries. Searching all of them and merging the results
improves recall by capturing different phrasings of the same need.

The original query is always kept as the first variant, so a failed LLM call
degrades to a plain single-query search.
"""

import logging
from typing import Any, List, Optional

from langchain_core.output_parsers import JsonOutputParser
from langchain_core.runnables import RunnableLambda, RunnableWithFallbacks
from langchain_groq import ChatGroq

from semsearch.core.config import settings
from semsearch.llm.prompts import get_reformulation_prompt

logger = logging.getLogger(__name__)


def _create_fallback_runnable(fallback_value: Any) -> RunnableLambda:
    """Create a runnable that returns a constant fallback value."""
    return RunnableLambda(lambda _: fallback_value)


class QueryReformulator:
    """
    Generates alternative phrasings of a query using an LLM.

    Uses LangChain's LCEL with fallback handling for robustness.
    """

    def __init__(
        self,
        num_queries: Optional[int] = None,
        model_name: Optional[str] = None,
        temperature: Optional[float] = None,
        llm: Any = None,
    ):
        """
        Initialize the reformulator.

        Args:
            num_queries: Number of alternatives to request (default: from settings)
            model_name: Groq model to use (default: from settings)
            temperature: LLM temperature (default: from settings)
            llm: Pre-built chat model, mainly for tests
        """
        self.num_queries = (
            num_queries if num_queries is not None else settings.NUM_REFORMULATED_QUERIES
        )
        self.llm = llm if llm is not None else ChatGroq(
            model=model_name or settings.GROQ_MODEL,
            temperature=temperature if temperature is not None else settings.LLM_TEMPERATURE,
            max_tokens=settings.LLM_MAX_TOKENS,
            api_key=settings.GROQ_API_KEY,
        )
        self.parser = JsonOutputParser()
        self._build_chain()

    def _build_chain(self):
        """Build the LCEL chain with fallback handling."""
        base_chain = get_reformulation_prompt() | self.llm | self.parser

        # Fallback returns None, indicating reformulation failed
        self.chain: RunnableWithFallbacks = base_chain.with_fallbacks(
            [_create_fallback_runnable(None)],
            exceptions_to_handle=(Exception,),
        )

    def _clean(self, query: str, alternatives: Any) -> List[str]:
        variants = [query]
        seen = {query.strip().lower()}

        if not isinstance(alternatives, list):
            return variants

        for alternative in alternatives:
            if not isinstance(alternative, str):
                continue
            text = alternative.strip()
            if not text or text.lower() in seen:
                continue
            seen.add(text.lower())
            variants.append(text)
            if len(variants) > self.num_queries:
                break

        return variants

    async def reformulate(self, query: str) -> List[str]:
        """
        Expand a query into search variants.

        Returns:
            The original query followed by up to num_queries distinct alternatives
        """
        if self.num_queries <= 0:
            return [query]

        result = await self.chain.ainvoke(
            {"query": query, "num_queries": self.num_queries}
        )

        if result is None:
            logger.warning("Query reformulation failed, searching with the original query only")
            return [query]

        alternatives = result.get("queries") if isinstance(result, dict) else result
        variants = self._clean(query, alternatives)
        logger.debug(f"Reformulated query into {len(variants)} variants: {variants}")
        return variants


# Module-level singleton
_reformulator: Optional[QueryReformulator] = None


def get_reformulator() -> Optional[QueryReformulator]:
    """Get or create the singleton reformulator; None when no LLM is configured."""
    global _reformulator
    if _reformulator is None:
        if not settings.GROQ_API_KEY:
            logger.info("GROQ_API_KEY not set, query reformulation disabled")
            return None
        _reformulator = QueryReformulator()
    return _reformulator
