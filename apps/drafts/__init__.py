"""
Drafts app: the Draft Producer contract and its backends.
"""
