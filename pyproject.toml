[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "juliaup"
version = "1.17.20"
description = "Julia installer and version multiplexer"
requires-python = ">=3.10"
keywords = ["julia", "installer", "version-manager", "toolchain", "channels"]
classifiers = [
    "Development Status :: 5 - Production/Stable",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Installation/Setup",
    "Topic :: Software Development :: Build Tools",
]
dependencies = [
    "requests>=2.28",
    "semver>=3.0",
    "portalocker>=2.7",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[tool.hatch.build.targets.wheel]
packages = ["juliaup"]

[tool.hatch.build.targets.sdist]
include = ["juliaup", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
