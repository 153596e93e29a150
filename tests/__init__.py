"""
Boardroom Test Suite
====================

Test organization mirrors the source code structure:
    tests/
    ├── test_core/          → Tests for boardroom.core (config, models, state, errors)
    ├── test_agents/        → Tests for boardroom.agents (base, executives, runtime)
    ├── test_orchestration/ → Tests for boardroom.orchestration (store, queue, tracker, ...)
    ├── test_integrations/  → Tests for boardroom.integrations (capability providers)
    ├── test_integration/   → End-to-end tests through the Orchestrator facade
    ├── test_facade.py      → Tests for boardroom.facade
    └── conftest.py         → Shared pytest fixtures

Running Tests:
    pytest                          # Run all tests
    pytest tests/test_orchestration/ # Run only orchestration tests
    pytest --cov=boardroom          # Run with coverage report
"""
