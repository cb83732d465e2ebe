class XcodeTaskError(Exception):
    """Base class for failures that abort the task"""


class ToolNotFoundError(XcodeTaskError):
    def __init__(self, tool: str):
        super().__init__(f"Unable to locate executable file: '{tool}'")
        self.tool = tool


class ToolExecutionError(XcodeTaskError):
    def __init__(self, tool: str, exit_code: int):
        super().__init__(f"{tool} failed with return code: {exit_code}")
        self.tool = tool
        self.exit_code = exit_code


class WorkspaceNotFoundError(XcodeTaskError):
    def __init__(self, pattern: str):
        super().__init__(f"Workspace specified was not found: {pattern}")
        self.pattern = pattern


class ActionsRequiredError(XcodeTaskError):
    def __init__(self):
        super().__init__("At least one xcodebuild action is required")


class SchemeRequiredError(XcodeTaskError):
    def __init__(self):
        super().__init__("A scheme is required to create an archive")


class WorkspaceOrProjectRequiredError(XcodeTaskError):
    def __init__(self):
        super().__init__("A workspace or project path is required to create an archive")


class ExtraArgumentsError(XcodeTaskError):
    def __init__(self, extra_args: str, reason: str):
        super().__init__(f"Unable to parse additional xcodebuild arguments '{extra_args}': {reason}")
        self.extra_args = extra_args


class ExportMethodRequiredError(XcodeTaskError):
    def __init__(self):
        super().__init__("An export method is required when export options are specified")


class ExportOptionsPlistInvalidFilePathError(XcodeTaskError):
    def __init__(self, path):
        super().__init__(
            f"Export options plist file does not exist or is not a file: {path}"
        )
        self.path = path


class ExportOptionsGenerationError(XcodeTaskError):
    def __init__(self, detail: str = ""):
        message = "Failed to generate the export options plist"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
