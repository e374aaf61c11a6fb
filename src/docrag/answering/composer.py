"""Grounded prompt assembly and answer generation."""

from __future__ import annotations

import logging
from typing import Sequence

from docrag.generation.llm_client import Generator
from docrag.models import Answer, ScoredChunk

LOGGER = logging.getLogger(__name__)

CONTEXT_DELIMITER = "\n-----\n"

PROMPT_TEMPLATE = (
    "Answer the question using only the context below. "
    "If the context does not contain the answer, say that you don't know.\n\n"
    "Context:\n{context}\n\n"
    "Question: {query}\n"
    "Answer:"
)

NO_CONTEXT_TEMPLATE = (
    "No relevant context was found in the indexed documents for this question. "
    "Tell the user that the documents do not contain information about it "
    "instead of guessing.\n\n"
    "Question: {query}\n"
    "Answer:"
)


def format_context(retrieved: Sequence[ScoredChunk]) -> str:
    return CONTEXT_DELIMITER.join(
        f"[source: {item.chunk.source} #{item.chunk.chunk_index}]\n{item.chunk.content}"
        for item in retrieved
    )


def compose_prompt(query: str, retrieved: Sequence[ScoredChunk]) -> str:
    """Build the generation prompt for ``query`` from the retrieved chunks."""
    if not retrieved:
        return NO_CONTEXT_TEMPLATE.format(query=query)
    return PROMPT_TEMPLATE.format(context=format_context(retrieved), query=query)


class AnswerComposer:
    """Builds a grounded prompt and hands it to a generation provider."""

    def __init__(self, generator: Generator) -> None:
        self.generator = generator

    def answer(self, query: str, retrieved: Sequence[ScoredChunk]) -> Answer:
        prompt = compose_prompt(query, retrieved)
        if not retrieved:
            LOGGER.info("No context retrieved, asking the model to say so")
        text = self.generator.generate(prompt)
        return Answer(text=text, prompt=prompt, sources=list(retrieved))
