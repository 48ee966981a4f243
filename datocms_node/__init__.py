"""DatoCMS node for workflow automation hosts.

Runs record, upload, model and block operations against the DatoCMS
Content Management API on behalf of an automation host.
"""

__version__ = "0.1.0"
