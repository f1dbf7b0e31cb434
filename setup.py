from pathlib import Path

from setuptools import find_namespace_packages, setup

ROOT = Path(__file__).parent

# Read requirements (ignore comments and recursive -r entries)
req_path = ROOT / "requirements.txt"
requirements = []
if req_path.exists():
    for line in req_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or line.startswith("-r"):
            continue
        requirements.append(line)

readme = (ROOT / "README.md").read_text(encoding="utf-8") if (ROOT / "README.md").exists() else ""

setup(
    name="growtrack-facility",
    version="1.0.0",
    description="GrowTrack cultivation facility tracking: grid addressing, plant lifecycle and METRC tags",
    long_description=readme,
    long_description_content_type="text/markdown",
    # infrastructure/ and some subpackages are namespace packages (no __init__.py)
    packages=find_namespace_packages(include=("app", "app.*", "infrastructure", "infrastructure.*")),
    py_modules=["growtrack_app"],
    python_requires=">=3.10,<4",
    install_requires=requirements or ["flask>=3.0.0", "pydantic>=2.5.0"],
    extras_require={
        "dev": [
            "pytest>=7.4.0,<9.1",  # 9.1 attaches caplog handlers to non-propagating loggers
            "pytest-flask>=1.2.0",
            "pytest-cov>=4.1.0",
            "black>=23.7.0",
            "flake8>=6.0.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Scientific/Engineering :: Agriculture",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    keywords="cultivation metrc compliance plant-tracking facility",
    entry_points={
        "console_scripts": [
            "growtrack-backend=growtrack_app:main",
        ]
    },
)
