# Sphinx configuration file

import os
import sys
sys.path.insert(0, os.path.abspath('../src'))

project = 'Workflow Kernel'
copyright = '2026, Workflow Kernel contributors'
author = 'Workflow Kernel contributors'
release = '0.1.0'

extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.napoleon',
    'sphinx.ext.viewcode',
    'sphinx.ext.intersphinx',
    'sphinx_autodoc_typehints',
]

templates_path = ['_templates']
exclude_patterns = ['_build', 'Thumbs.db', '.DS_Store']

html_theme = 'sphinx_rtd_theme'
html_static_path = ['_static']

# Autodoc settings
autodoc_default_options = {
    'members': True,
    'member-order': 'bysource',
    'special-members': '__init__',
    'undoc-members': True,
    'exclude-members': '__weakref__'
}

# Callback aliases
autodoc_type_aliases = {
    'Handler': 'workflow_kernel.kernel.workflow.events.Handler',
    'Guard': 'workflow_kernel.kernel.workflow.state_machine.Guard',
    'SideEffect': 'workflow_kernel.kernel.workflow.state_machine.SideEffect',
    'Reaction': 'workflow_kernel.kernel.workflow.router.Reaction',
}

# Napoleon settings
napoleon_google_docstring = True
napoleon_numpy_docstring = False

# Intersphinx mapping
intersphinx_mapping = {
    'python': ('https://docs.python.org/3', None),
    'pydantic': ('https://docs.pydantic.dev/latest', None),
}
