[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "robodesc"
version = "0.1.0"
description = "Read URDF and YAML robot descriptions into bodies, joints, inertias, geometry and joint limits"
requires-python = ">=3.10"
keywords = ["robotics", "urdf", "yaml", "rigid body", "joint", "inertia"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering",
]
dependencies = [
    "numpy",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["robodesc"]

[tool.pytest.ini_options]
addopts = "-ra"
