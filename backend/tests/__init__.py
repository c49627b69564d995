"""
IntelliCard Test Suite

Test Structure:
    tests/
    ├── conftest.py          # Shared fixtures and configuration
    ├── unit/                # Unit tests (isolated, no external dependencies)
    │   ├── test_sm2.py      # SM-2 review outcome processor
    │   ├── test_access_policy.py
    │   ├── test_access_requests.py
    │   └── ...
    └── integration/         # Services and routers on in-memory SQLite
        ├── test_study_flow.py
        ├── test_access_request_flow.py
        ├── test_card_sets.py
        └── test_api.py

Running Tests:
    # Run all tests
    pytest -v

    # Run only unit tests (fast, no dependencies)
    pytest backend/tests/unit/ -v

    # Run only integration tests
    pytest -m integration -v
"""
