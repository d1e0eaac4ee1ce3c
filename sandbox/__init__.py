from sandbox.workspace import Workspace, WorkspaceManager, extension_for

__all__ = ["Workspace", "WorkspaceManager", "extension_for"]
