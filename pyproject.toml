[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "beefykit"
version = "0.1.0"
description = "BEEFY bridge-finality primitives, voting rounds, gossip validation and command-line utilities"
requires-python = ">=3.10"
keywords = ["beefy", "finality", "bridge", "scale", "mmr", "consensus", "secp256k1"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: System :: Distributed Computing",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
beefykit = "beefykit.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["beefykit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
