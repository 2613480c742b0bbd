"""
Entry point for running WordDex as a module.

Usage:
    python -m worddex --help
    python -m worddex classify "東京に行きます"
    python -m worddex usage show
"""
from .cli import app


if __name__ == "__main__":
    app()
