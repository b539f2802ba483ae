"""
Aggregate analytics over the document store.
"""

from collections import Counter
from typing import Any, Dict

TOP_TOPICS_LIMIT = 10


def collect_stats(store) -> Dict[str, Any]:
    """Single pass over a store snapshot: counts by type, difficulty and topic."""
    documents = store.snapshot()

    document_types = Counter()
    difficulty_levels = Counter()
    topic_counts = Counter()
    degraded = 0

    for document in documents:
        document_types[document.metadata.type.value] += 1
        difficulty_levels[document.metadata.difficulty.value] += 1
        topic_counts.update(document.metadata.topics)
        if document.embedding_degraded:
            degraded += 1

    return {
        "totalDocuments": len(documents),
        "lastIndexUpdate": store.last_modified,
        "documentTypes": dict(document_types),
        "difficultyLevels": dict(difficulty_levels),
        "topTopics": [
            {"topic": topic, "count": count}
            for topic, count in topic_counts.most_common(TOP_TOPICS_LIMIT)
        ],
        "embeddingDimension": store.dimension,
        "degradedEmbeddings": degraded,
    }
