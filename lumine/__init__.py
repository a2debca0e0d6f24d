"""Lumine: a personal finance chat assistant for Indonesian-language messages."""
