"""Document memory service: PDF ingestion, vector memory and RAG completions."""

__version__ = "1.0.0"
