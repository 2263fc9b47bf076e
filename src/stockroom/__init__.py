# Stockroom: warehouse stock tracking from invoices, delivery notes and physical counts.

__version__ = "0.1.0"
