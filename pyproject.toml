[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nginxwrapper"
version = "0.1.0"
description = "Run and supervise an NGINX process, turn its log output into lifecycle events, and extend it with plugins"
requires-python = ">=3.10"
dependencies = []
keywords = ["nginx", "process-supervisor", "events", "plugins", "reverse-proxy"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["nginxwrapper"]

[tool.hatch.build.targets.sdist]
include = ["nginxwrapper", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
