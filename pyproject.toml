[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "acidnet"
version = "0.1.0"
description = "Networking toolkit: byte buffers, configuration, logging, addresses, URIs, sockets and a small threaded HTTP server"
requires-python = ">=3.10"
keywords = ["http", "server", "socket", "bytearray", "varint", "logging", "config", "yaml", "uri"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "pyyaml>=6.0",
    "psutil>=5.9",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[tool.hatch.build.targets.wheel]
packages = ["acidnet"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
