# core/__init__.py
"""
Core package - feedback pipeline components.

Import order (least dependent first):
1. feedback_schema, emotion_mapper, prompt_builder, response_parser
2. fallback_engine, availability, session_manager
3. orchestrator, entry_classifier

The public entry points are resolved lazily on first attribute access so that
models/ can depend on core.feedback_schema without pulling the orchestrator in.
"""

import importlib

__all__ = [
    'FeedbackOrchestrator',
    'InFlightGuard',
    'EntryClassifier',
]

_LAZY_EXPORTS = {
    'FeedbackOrchestrator': 'core.orchestrator',
    'InFlightGuard': 'core.orchestrator',
    'EntryClassifier': 'core.entry_classifier',
}


def __getattr__(name):
    module_path = _LAZY_EXPORTS.get(name)
    if module_path is None:
        raise AttributeError(f"module 'core' has no attribute {name!r}")
    value = getattr(importlib.import_module(module_path), name)
    globals()[name] = value
    return value
