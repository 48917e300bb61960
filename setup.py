from pathlib import Path
from setuptools import setup, find_packages


def _parse_requirements(path: str) -> list[str]:
    req_path = Path(path)
    if not req_path.exists():
        return []
    lines = req_path.read_text().splitlines()
    return [l.strip() for l in lines if l.strip() and not l.strip().startswith("#")]


setup(
    name="paper-retrieval",
    version="0.1.0",
    description="Multi-provider academic paper search with rate limiting and retrieval benchmarks",
    package_dir={"": "src"},
    packages=find_packages(where="src", include=["paper_retrieval*"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=_parse_requirements("requirements-runtime.txt"),
    extras_require={
        "rerank": ["sentence-transformers>=2.2"],
        "test": ["pytest>=7.0", "pytest-asyncio>=0.21"],
    },
    entry_points={
        "console_scripts": ["paper-retrieval=paper_retrieval.main:main"],
    },
)
