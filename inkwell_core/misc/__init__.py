"""
Inkwell core miscellaneous helpers
"""
