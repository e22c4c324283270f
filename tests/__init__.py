"""
Pirate Bomb Cache Test Suite
============================

Test Organization
-----------------
- tests/unit/ : Fast unit tests, no external dependencies, no real sleeps
  for expiry (a fake clock drives TTLs)

Testing Philosophy
------------------
- Use pytest markers (`unit`, `cache`) to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
