"""
Kouban Core Module

Contains core systems including configuration, constants, exceptions, logging
and retry utilities.
"""

from .config import KoubanConfig, LLMConfig, PipelineConfig, load_config, get_config, set_config
from .constants import *
from .exceptions import *
from .logging_config import setup_logging, get_logger, LogLevel
from .retry import RetryConfig, BackoffStrategy, calculate_delay, retry_async_call

__all__ = [
    'KoubanConfig',
    'LLMConfig',
    'PipelineConfig',
    'load_config',
    'get_config',
    'set_config',
    'setup_logging',
    'get_logger',
    'LogLevel',
    'RetryConfig',
    'BackoffStrategy',
    'calculate_delay',
    'retry_async_call',
]
