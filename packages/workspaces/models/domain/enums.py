from enum import Enum


class PrivilegeLevel(str, Enum):
    """
    Membership privilege within a workspace.

    Elevated holders administer the workspace and are billed for its usage.
    """

    ELEVATED = "elevated"
    STANDARD = "standard"
