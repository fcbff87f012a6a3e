"""Digital marketplace backend.

Users register, publish digital products and buy products from one another;
each purchase is recorded as a transaction.
"""
