"""
news-rag: retrieval-augmented generation core for a news chat assistant.

Embeds news documents (with a persistent embedding cache), stores them in a
vector database with an in-memory fallback, and retrieves ranked context
for natural-language queries.
"""

__version__ = "0.1.0"
