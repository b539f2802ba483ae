"""
Sample lesson corpus and the helper used to add lesson passages.
"""

from typing import List, Optional

from ..vector.types import Difficulty, DocumentMetadata, DocumentType, LessonLink, NewDocument, VectorDocument

LESSON_SOURCE = "AI Mind OS Lessons"


def _sample(doc_id, title, source, doc_type, difficulty, topics, lesson_slug, content):
    return VectorDocument(
        id=doc_id,
        content=content,
        metadata=DocumentMetadata(
            title=title,
            source=source,
            type=doc_type,
            difficulty=difficulty,
            topics=topics,
            lesson_link=LessonLink(lesson_slug=lesson_slug),
        ),
    )


SAMPLE_DOCUMENTS: List[VectorDocument] = [
    _sample(
        "doc_001", "Introduction to Prompt Engineering", "AI Mind OS Core Lessons",
        DocumentType.CONCEPT, Difficulty.BEGINNER,
        ["prompt engineering", "AI basics", "communication"], "prompt-engineering-basics",
        "Prompt engineering is the practice of designing and refining prompts to elicit desired responses "
        "from AI language models. It involves understanding how to communicate effectively with AI systems "
        "through carefully crafted instructions, context, and examples.",
    ),
    _sample(
        "doc_002", "Temperature Control in AI Models", "AI Mind OS Advanced Techniques",
        DocumentType.CONCEPT, Difficulty.INTERMEDIATE,
        ["temperature", "AI parameters", "response control"], "ai-parameters-mastery",
        "Temperature settings control the randomness in AI responses. Lower temperatures (0.1-0.3) produce "
        "more focused, deterministic outputs suitable for factual content. Higher temperatures (0.7-1.0) "
        "increase creativity and variation, ideal for creative writing and brainstorming.",
    ),
    _sample(
        "doc_003", "Role-Based Prompting Strategies", "AI Mind OS Professional Techniques",
        DocumentType.EXAMPLE, Difficulty.INTERMEDIATE,
        ["role prompting", "persona", "audience targeting"], "advanced-prompting-techniques",
        "Role-based prompting involves instructing the AI to assume a specific role or persona. For example: "
        "\"You are an expert data scientist. Explain machine learning to a business executive.\" This technique "
        "helps tailor responses to specific audiences and contexts.",
    ),
    _sample(
        "doc_004", "Chain-of-Thought Prompting", "AI Mind OS Expert Methods",
        DocumentType.CONCEPT, Difficulty.ADVANCED,
        ["chain of thought", "reasoning", "complex problems"], "expert-prompting-methods",
        "Chain-of-thought prompting encourages AI models to show their reasoning process by asking them to "
        "think step by step. This technique significantly improves performance on complex reasoning tasks "
        "and mathematical problems.",
    ),
    _sample(
        "doc_005", "Few-Shot Learning Examples", "AI Mind OS Pattern Recognition",
        DocumentType.EXAMPLE, Difficulty.INTERMEDIATE,
        ["few-shot learning", "examples", "patterns"], "pattern-based-prompting",
        "Few-shot learning in prompt engineering involves providing the AI with a few examples of the desired "
        "input-output format before asking it to perform the task. This helps establish patterns and improves "
        "response consistency.",
    ),
    _sample(
        "doc_006", "Understanding Token Limits", "AI Mind OS Technical Foundations",
        DocumentType.CONCEPT, Difficulty.BEGINNER,
        ["tokens", "limits", "optimization"], "ai-technical-foundations",
        "Token limits are crucial constraints in AI models. GPT-4 has approximately 8,000-32,000 tokens "
        "depending on the version. One token is roughly 0.75 words. Understanding token usage helps optimize "
        "prompt efficiency and avoid truncation.",
    ),
    _sample(
        "doc_007", "AI Security and Prompt Injection", "AI Mind OS Security Module",
        DocumentType.CONCEPT, Difficulty.ADVANCED,
        ["security", "prompt injection", "defense"], "ai-security-essentials",
        "Prompt injection attacks occur when malicious users try to manipulate AI systems by embedding harmful "
        "instructions within seemingly innocent inputs. Defense strategies include input validation, output "
        "filtering, and prompt engineering safeguards.",
    ),
    _sample(
        "doc_008", "Business Prompt Engineering", "AI Mind OS Business Applications",
        DocumentType.EXAMPLE, Difficulty.INTERMEDIATE,
        ["business", "context", "objectives"], "business-ai-applications",
        "Effective business prompts should include: clear context about the company/industry, specific desired "
        "outcome, target audience information, brand voice guidelines, and any constraints or requirements. "
        "This ensures AI responses align with business objectives.",
    ),
]


def add_lesson_content(store, title: str, content: str, difficulty, topics: List[str],
                       lesson_link: Optional[LessonLink] = None) -> str:
    """Add a lesson-type passage under the shared lessons source. Returns the new id."""
    return store.add(NewDocument(
        content=content,
        metadata=DocumentMetadata(
            title=title,
            source=LESSON_SOURCE,
            type=DocumentType.LESSON,
            difficulty=difficulty,
            topics=topics,
            lesson_link=lesson_link,
        ),
    ))
