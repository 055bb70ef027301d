"""Shared utilities for processing flows."""

from signalist.processing.common.llm import create_model

__all__ = ["create_model"]
