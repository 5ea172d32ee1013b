# src/solbridge_client/utils/__init__.py

from .token_formatter import format_token_for_display

__all__ = ['format_token_for_display']
