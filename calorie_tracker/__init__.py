"""Calorie Tracker API: users, sessions, food catalog and daily food logs."""
