"""
Smartwatch Health Monitor - Smartwatch health reading ingestion and sync.

Loads heart rate, SpO2, temperature and step readings from CSV exports and
Google Fit, merges them into one timeline, and synchronizes them with
Cloud Firestore across multiple Firebase project environments.
"""

__version__ = "0.1.0"
