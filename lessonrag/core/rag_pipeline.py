"""
Retrieval-augmented answering over the lesson library.

Stages run strictly in order: retrieve, assemble context, generate, then
derive confidence and follow-up questions. An empty retrieval ends the
pipeline early with a zero-confidence answer; provider failures degrade
the answer text but never abort the pipeline.
"""

import json
import re
from typing import List, Optional

from .config import (
    FOLLOW_UP_MAX_TOKENS,
    FOLLOW_UP_TEMPERATURE,
    RAG_CONTEXT_MAX_CHARS,
    RAG_MAX_TOKENS,
    RAG_TEMPERATURE,
    RAG_THRESHOLD,
)
from ..vector.types import RAGOptions, RAGResult, RAGSource, ResponseStyle, ScoredDocument, SearchQuery
from ..util.logging import logger

NO_INFORMATION_ANSWER = (
    "I don't have specific information about that topic in my knowledge base. "
    "Could you rephrase your question or ask about AI prompt engineering, "
    "temperature settings, or other AI concepts?"
)

CLARIFYING_QUESTIONS = [
    "What specific aspect of AI would you like to learn about?",
    "Are you interested in prompt engineering techniques?",
    "Would you like to know about AI model parameters?",
]

# Used when the model replies but not with a JSON array
PRACTICE_FOLLOW_UPS = [
    "How can I apply this concept in practice?",
    "What are some common mistakes to avoid?",
    "Are there any advanced techniques related to this topic?",
]

# Used when the follow-up call itself fails
GENERIC_FOLLOW_UPS = [
    "Can you provide more specific examples?",
    "How does this relate to other AI concepts?",
    "What should I learn next about this topic?",
]

SNIPPET_LENGTH = 150
MAX_CONFIDENCE = 95
SOURCE_SATURATION = 5
SOURCE_BOOST = 10

BASE_SYSTEM_PROMPT = """You are an expert AI tutor for AI Mind OS, a comprehensive AI and prompt engineering education platform. Use the provided context to answer questions accurately and helpfully.

Guidelines:
- Base your response primarily on the provided context
- If the context doesn't fully address the question, acknowledge limitations
- Provide practical, actionable insights
- Use examples when helpful
- Maintain accuracy and avoid speculation
- Reference the sources naturally in your response"""

STYLE_PROMPTS = {
    ResponseStyle.CONCISE: "Keep responses focused and to-the-point. Prioritize key information and actionable insights.",
    ResponseStyle.DETAILED: "Provide comprehensive explanations with examples, context, and practical applications.",
    ResponseStyle.CONVERSATIONAL: "Use a friendly, engaging tone as if explaining to a colleague. Include analogies and relatable examples.",
}

FOLLOW_UP_SYSTEM_PROMPT = (
    "Generate 3 relevant follow-up questions based on the user's original question and the answer provided. "
    "Questions should encourage deeper learning and practical application."
)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


def build_system_prompt(style: ResponseStyle) -> str:
    """System prompt for answer generation in the requested style."""
    return f"{BASE_SYSTEM_PROMPT}\n\nResponse Style: {STYLE_PROMPTS[ResponseStyle(style)]}"


def assemble_context(documents: List[ScoredDocument], max_chars: int = RAG_CONTEXT_MAX_CHARS) -> str:
    """
    Join retrieved passages into one grounding block, each labeled with its title.

    Whole passages are kept while they fit; the first passage that does not
    fit is cut at the size bound and nothing after it is included.
    """
    blocks = []
    used = 0
    for index, scored in enumerate(documents, start=1):
        block = f"[Source {index}: {scored.document.metadata.title}]\n{scored.document.content}"
        separator = 2 if blocks else 0
        if used + separator + len(block) <= max_chars:
            blocks.append(block)
            used += separator + len(block)
            continue

        remaining = max_chars - used - separator
        if remaining > 0:
            blocks.append(block[:remaining])
        break

    return "\n\n".join(blocks)


def calculate_confidence(avg_similarity: float, result_count: int) -> int:
    """
    Confidence percentage from retrieval quality.

    Mean similarity scaled to a percentage, plus up to 10 points for
    corroborating sources (saturating at five), capped at 95.
    """
    confidence = avg_similarity * 100
    confidence += min(result_count / SOURCE_SATURATION, 1) * SOURCE_BOOST
    return int(round(max(0.0, min(confidence, MAX_CONFIDENCE))))


def make_snippet(content: str, length: int = SNIPPET_LENGTH) -> str:
    return content[:length] + ("..." if len(content) > length else "")


def parse_follow_ups(text: str) -> Optional[List[str]]:
    """Parse a JSON array of questions, tolerating a markdown code fence. None if unusable."""
    try:
        parsed = json.loads(_CODE_FENCE.sub("", text.strip()))
    except (json.JSONDecodeError, TypeError):
        return None

    if not isinstance(parsed, list):
        return None
    questions = [q.strip() for q in parsed if isinstance(q, str) and q.strip()]
    return questions or None


def no_information_result() -> RAGResult:
    return RAGResult(
        answer=NO_INFORMATION_ANSWER,
        sources=[],
        confidence=0,
        follow_up_questions=list(CLARIFYING_QUESTIONS),
    )


class RAGPipeline:
    """Retrieve, ground, generate, and score answers to learner questions."""

    def __init__(self, search_service, gateway, threshold: float = RAG_THRESHOLD,
                 context_max_chars: int = RAG_CONTEXT_MAX_CHARS):
        self.search_service = search_service
        self.gateway = gateway
        self.threshold = threshold
        self.context_max_chars = context_max_chars

    def run(self, query: str, options: Optional[RAGOptions] = None) -> RAGResult:
        """
        Answer ``query`` from the document store.

        Args:
            query: The learner's question
            options: Source count, follow-up and style options

        Returns:
            RAGResult with answer, attributed sources, confidence and follow-ups
        """
        options = options or RAGOptions()
        search_query = SearchQuery(query=query, limit=options.max_sources, threshold=self.threshold)

        retrieval = self.search_service.search(search_query)
        logger.log_rag_stage("retrieve", details={
            "returned": len(retrieval.documents),
            "total_results": retrieval.total_results
        })

        if not retrieval.documents:
            logger.log_rag_stage("retrieve", "empty", {"query": query})
            return no_information_result()

        context = assemble_context(retrieval.documents, self.context_max_chars)
        logger.log_rag_stage("assemble", details={"context_chars": len(context)})

        answer = self.gateway.complete(
            build_system_prompt(options.response_style),
            [{"role": "user", "content": f"Context:\n{context}\n\nQuestion: {query}"}],
            temperature=RAG_TEMPERATURE,
            max_tokens=RAG_MAX_TOKENS,
        )
        logger.log_rag_stage("generate", details={"answer_chars": len(answer)})

        follow_ups = self.generate_follow_ups(query, answer) if options.include_follow_up else []

        confidence = calculate_confidence(retrieval.avg_similarity, len(retrieval.documents))
        sources = [
            RAGSource(
                title=scored.document.metadata.title,
                source=scored.document.metadata.source,
                relevance=int(round(scored.similarity * 100)),
                snippet=make_snippet(scored.document.content),
            )
            for scored in retrieval.documents
        ]

        logger.log_rag_stage("derive", details={"confidence": confidence, "sources": len(sources)})
        return RAGResult(answer=answer, sources=sources, confidence=confidence, follow_up_questions=follow_ups)

    def generate_follow_ups(self, query: str, answer: str) -> List[str]:
        """Ask the model for follow-up questions; substitute a fixed set on any failure."""
        result = self.gateway.try_complete(
            FOLLOW_UP_SYSTEM_PROMPT,
            [{
                "role": "user",
                "content": f"Original question: {query}\nAnswer: {answer}\n\nGenerate follow-up questions as JSON array."
            }],
            temperature=FOLLOW_UP_TEMPERATURE,
            max_tokens=FOLLOW_UP_MAX_TOKENS,
        )
        if not result.ok:
            logger.log_provider_fallback("follow_ups", result.error)
            return list(GENERIC_FOLLOW_UPS)

        questions = parse_follow_ups(result.value)
        if questions is None:
            logger.log_rag_stage("follow_ups", "unparseable")
            return list(PRACTICE_FOLLOW_UPS)
        return questions
