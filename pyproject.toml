[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "samclient"
version = "0.1.0"
description = "Client for the I2P SAM v3 bridge: stream, datagram and raw sessions, naming lookups and key generation"
requires-python = ">=3.10"
dependencies = []
keywords = ["i2p", "sam", "anonymity", "network", "streaming"]
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
    "Topic :: Internet",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
eepget = "samclient.eepget:main"

[tool.hatch.build.targets.wheel]
packages = ["samclient"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
