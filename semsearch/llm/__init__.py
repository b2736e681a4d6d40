"""
LLM module for query reformulation.

This module handles interaction with large language models for
generating alternative phrasings of a user query, which the
multi-query search path fans out over.
"""

from semsearch.llm.reformulator import QueryReformulator, get_reformulator

__all__ = ["QueryReformulator", "get_reformulator"]
