"""
CNA Reports Tests Package
=========================
Test suite for item statistics, the report builder, and the exporters.

Run all tests: python3 -m pytest tests/reports/ -v
Run specific: python3 -m pytest tests/reports/test_export.py -v
"""
