"""Processing module - organized by flow.

Submodules:
- watchlist: account watchlists and membership outcomes
- news: news item model and aggregation
- digest: daily digest orchestration and summarization
- common: cross-flow utilities (LLM factory)
"""
