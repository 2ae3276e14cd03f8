[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "eksa-bundlegen"
version = "0.1.0"
description = "Build, validate and serialize package bundle manifests from container registry image digests and Helm chart requirements."
requires-python = ">=3.10"
keywords = ["kubernetes", "packages", "bundle", "helm", "ecr", "oci", "yaml"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Software Distribution",
    "Typing :: Typed",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["eksa_bundlegen"]

[tool.pytest.ini_options]
addopts = "-ra"
