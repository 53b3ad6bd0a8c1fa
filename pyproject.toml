[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "stashem"
version = "0.1.1"
description = "A thread-safe in-memory byte stash with TTL expiry, LRU eviction and memory limits"
requires-python = ">=3.10"
dependencies = []
keywords = ["cache", "lru", "ttl", "in-memory", "rate-limit", "wsgi"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Middleware",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
stashem-ratelimit = "stashem.ratelimit:main"

[tool.hatch.build.targets.wheel]
packages = ["stashem"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
