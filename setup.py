"""
Setup script for the Job Board monetization service
"""
from setuptools import setup, find_packages

setup(
    name="job_board",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10,<3.14",
    install_requires=[
        "fastapi>=0.110",
        "starlette>=0.36",
        "uvicorn>=0.27",
        "pydantic>=2.5",
        "email-validator>=2.0",
        "sqlalchemy>=2.0",
        "alembic>=1.13",
        "psycopg2-binary>=2.9",
        "python-dotenv>=1.0",
        "python-jose[cryptography]>=3.3",
        "passlib>=1.7.4",
        "bcrypt>=4.0",
        "stripe>=8.0",
        "httpx>=0.26",
        "apscheduler>=3.10,<4",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
        ],
    },
)
