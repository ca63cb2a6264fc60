"""Supabase infrastructure module"""
from .client import get_supabase_client, reset_supabase_client
from .repositories.base import BaseRepository

__all__ = ['get_supabase_client', 'reset_supabase_client', 'BaseRepository']
