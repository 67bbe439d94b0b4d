"""Usergate: user registration, login and token lifecycle API."""
