"""
Test Suite

Structure:
- tests/unit/: Tests for individual components (client, extractor, sink, task, scheduler, config)

All network and database access is faked. Uses pytest with pytest-asyncio
for testing async functionality.
"""
