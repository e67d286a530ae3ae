"""
envpull

Share and sync .env files through Google Cloud Storage buckets, scoped per
project (from the git remote) and per environment.
"""

__version__ = '0.1.0'

from .env_pull import EnvPull

__all__ = ['EnvPull']
