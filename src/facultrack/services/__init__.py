"""Service abstractions for the FacultyTrack application."""

from .assembler import AssemblyError, IdentitySource, MetricsSource, ProfileAssembler
from .dashboard import DashboardFilter, DashboardSummary, build_dashboard, departments
from .indexing import PublicationSource, ScopusSource, WosSource
from .merge import find_match, merge_publications
from .openalex import OpenAlexClient
from .orcid import OrcidClient, RegistryError
from .storage import LocalDirectory, ProfileRepository
from .tools import TOOL_DECLARATIONS, ToolExecutor, faculty_directory

__all__ = [
    "AssemblyError",
    "IdentitySource",
    "MetricsSource",
    "ProfileAssembler",
    "DashboardFilter",
    "DashboardSummary",
    "build_dashboard",
    "departments",
    "PublicationSource",
    "ScopusSource",
    "WosSource",
    "find_match",
    "merge_publications",
    "OpenAlexClient",
    "OrcidClient",
    "RegistryError",
    "LocalDirectory",
    "ProfileRepository",
    "TOOL_DECLARATIONS",
    "ToolExecutor",
    "faculty_directory",
]
