"""Runnable static QR demo."""
