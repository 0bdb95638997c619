# tests/__init__.py
"""
BeatGuard - Test Suite

1. Codec Tests: BEAT tokenizer/encoder, grammar, session score codec
2. Ingestion Tests: fragment records, batch payloads, rhythm cookies
3. Reassembly Tests: multi-tab traversal and metric aggregation
4. Agent Tests: bot detector bank and human rules
5. Service Tests: live-streaming and archiving passes, CLI
6. Configuration Tests: YAML loading and logging utilities

To run tests:
    python -m pytest tests/ -v              # Run all tests
    python -m pytest tests/test_agents.py   # Run specific test file
    python -m pytest -m detection           # Run tests by marker
"""

import sys
import os

# Make the project root importable without installation
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
