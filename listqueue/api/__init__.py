"""
API module.
Contains the HTTP submission surface for the queue.
"""
