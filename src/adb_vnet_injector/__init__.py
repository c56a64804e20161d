"""
adb-vnet-injector - Azure Databricks VNet injection tool

Moves an existing Azure Databricks workspace into a customer-managed virtual
network by exporting its ARM template, patching it and redeploying it.
"""

__version__ = "1.0.0"
__author__ = "adb-vnet-injector contributors"
__license__ = "GPL-3.0"

from .config_loader import ConfigLoader
from .validator import ConfigValidator, InjectionValidator
from .orchestrator import Orchestrator
from .template_transformer import TemplateTransformer
from .azure_cli import AzureCli

__all__ = [
    "AzureCli",
    "ConfigLoader",
    "ConfigValidator",
    "InjectionValidator",
    "Orchestrator",
    "TemplateTransformer",
]
