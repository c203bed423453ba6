"""
API server package — HTTP interface for pre-send address checks.

Validates request parameters, delegates to the analytics pipeline and maps
domain errors to stable JSON error codes.
"""
