"""
Resolution tools for If File Exists.

This module contains the file existence resolver and the collaborators it
relies on: site directories, placeholder rendering and markup sanitizing.
"""
