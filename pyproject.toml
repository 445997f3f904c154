[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "minitls"
version = "0.1.0"
description = "A small TLS-like secure channel: TLV handshake, ECDH key exchange, AES-CBC with HMAC over TCP"
requires-python = ">=3.10"
dependencies = [
    "cryptography",
]
keywords = ["tls", "handshake", "ecdh", "tlv", "secure-channel", "hmac"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security :: Cryptography",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
minitls-server = "minitls.server:main"
minitls-client = "minitls.client:main"
minitls-gen-cert = "minitls.gen_cert:main"

[tool.hatch.build.targets.wheel]
packages = ["minitls"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
