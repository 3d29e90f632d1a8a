"""
Memora Test Suite

Test Structure:
    tests/
    ├── conftest.py                  # Shared fixtures and configuration
    └── unit/                        # Unit tests (isolated, no external dependencies)
        ├── test_config.py           # Settings and YAML configuration
        ├── test_memory_model.py     # SM-2 scheduling step
        ├── test_session_engine.py   # Session state machine
        ├── test_study_service.py    # Async orchestration over in-memory stores
        ├── test_rate_limit.py       # Per-user limiter (Redis mocked)
        ├── test_locks.py            # Keyed asyncio locks
        └── ...

Running Tests:
    # Run all tests
    pytest tests/ -v

    # Run with coverage
    pytest tests/ --cov=memora --cov-report=html
"""
