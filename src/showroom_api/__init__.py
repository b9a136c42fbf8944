"""Showroom API: audited file uploads and the audit log behind them."""
