[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "euterpe"
version = "0.1.0"
description = "Media library for a personal music server: scanning, watching, search, browsing and artwork thumbnails backed by SQLite"
requires-python = ">=3.10"
keywords = ["music", "media-library", "sqlite", "audio", "thumbnails", "file-watching"]
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
    "Topic :: Multimedia :: Sound/Audio :: Players",
    "Topic :: Database",
]
dependencies = [
    "pillow",
    "watchdog",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["euterpe"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
