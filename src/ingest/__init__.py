"""Tabular data ingestion.

This package reads CSV and spreadsheet sources into header plus row streams.
It writes them into the store as datasets inside one transaction.
"""
