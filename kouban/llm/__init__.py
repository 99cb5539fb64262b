"""
Kouban LLM Module

Extraction oracle clients, prompts and defensive response parsing.
"""

from .oracle import (
    ExtractionOracle,
    OpenAIOracle,
    AnthropicOracle,
    create_oracle,
)
from .response_parser import (
    ParsedResponse,
    ResponseKind,
    extract_json_object,
    parse_oracle_response,
)
from .schemas import OraclePayload, RawScene, SkeletonEntry

__all__ = [
    'ExtractionOracle',
    'OpenAIOracle',
    'AnthropicOracle',
    'create_oracle',
    'ParsedResponse',
    'ResponseKind',
    'extract_json_object',
    'parse_oracle_response',
    'OraclePayload',
    'RawScene',
    'SkeletonEntry',
]
