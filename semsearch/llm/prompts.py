"""
Prompt templates for LLM interactions.

This module contains the prompt templates used for query reformulation.
Prompts are designed to elicit focused, search-oriented outputs.
"""

from langchain_core.prompts import ChatPromptTemplate

REFORMULATION_SYSTEM_PROMPT = """You rewrite search queries for a semantic document search engine.

Given a user query, produce {num_queries} alternative search queries that:
- Preserve the user's information need exactly; do not add new constraints
- Use different wording, synonyms, or a more specific phrasing of the same need
- Are short (under 20 words) and self-contained

Respond with ONLY a JSON object of the form:
{{"queries": ["first alternative", "second alternative"]}}"""

REFORMULATION_USER_PROMPT = "Query: {query}"


def get_reformulation_prompt() -> ChatPromptTemplate:
    """Prompt asking for alternative phrasings of a query as JSON."""
    return ChatPromptTemplate.from_messages(
        [
            ("system", REFORMULATION_SYSTEM_PROMPT),
            ("human", REFORMULATION_USER_PROMPT),
        ]
    )
