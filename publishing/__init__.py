"""Publishing helpers.

This package turns a generated caption into one post per destination page
and remembers the pages (and their contact details) used before.
"""
