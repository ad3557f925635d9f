"""Database Export - dump a Supabase/PostgreSQL schema to SQL scripts and Dart models."""

__version__ = "0.1.0"
