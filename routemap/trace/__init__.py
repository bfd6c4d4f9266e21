"""
Trace acquisition for RouteMap
"""

from .base import BaseDecoder, DecodeResult
from .parser import JsonReportDecoder, TextReportDecoder, TraceOutputParser
from .runner import TraceRunner

__all__ = [
    'BaseDecoder', 'DecodeResult', 'JsonReportDecoder', 'TextReportDecoder',
    'TraceOutputParser', 'TraceRunner',
]
