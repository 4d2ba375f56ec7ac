[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "txmempool"
version = "0.1.0"
description = "An ordered, concurrent in-memory transaction pool with LRU caching, rechecking and reaping limits."
requires-python = ">=3.10"
dependencies = []
keywords = ["mempool", "transactions", "blockchain", "linked-list", "lru-cache", "concurrency"]
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
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["txmempool"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
