"""Xero invoicing connector for completed e-commerce orders."""
