"""
This directory contains the glsl templates for the scaffold that wraps user
code. They are rendered with jinja2, see ``shaderpass.compiler.templating``.
"""
