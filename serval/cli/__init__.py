"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Serval, a product of Garudex Labs

Command-line interface for Serval.
"""
