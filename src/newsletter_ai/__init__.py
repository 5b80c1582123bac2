"""Multi-tenant newsletter curation: curate news, summarize with AI, publish as PDF."""

__all__ = ["config", "models", "pipeline", "server"]
