[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "iwmstats"
version = "0.0.1"
description = "Read, edit, encrypt and decrypt Call of Duty 4 mpdata stats files"
requires-python = ">=3.10"
dependencies = []
keywords = ["cod4", "mpdata", "iwm", "stats", "md4"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment :: First Person Shooters",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
iwmstats = "iwmstats.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["iwmstats"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
