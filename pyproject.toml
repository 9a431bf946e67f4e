[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "webfuzz"
version = "2.0.0"
description = "Web fuzzing building blocks: wordlist and command inputs, HTTP runner, response filters and matchers, scrapers and result reports"
requires-python = ">=3.10"
keywords = ["fuzzing", "http", "web", "security", "wordlist", "content-discovery"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Information Technology",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Security",
]
dependencies = [
    "jinja2",
    "beautifulsoup4",
    "requests",
    "brotli",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["webfuzz"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
