"""Ingress sources producing the keyed transaction event stream."""

from txa.collectors.base import BaseSource
from txa.collectors.jsonl import JsonLinesSource
from txa.collectors.sample import SampleSource

__all__ = ["BaseSource", "JsonLinesSource", "SampleSource"]
