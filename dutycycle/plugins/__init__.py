"""
Collaborator implementations that ship with the library.
"""
