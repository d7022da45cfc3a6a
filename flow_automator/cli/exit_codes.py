"""Standard exit codes for the Flow Automator CLI.

These codes are shared by every command so that scripts driving the
queue can tell configuration problems apart from failed runs.
"""


class ExitCode:
    """Standard exit codes for the Flow Automator CLI.
    
    Unix conventions are followed where they exist:
    - 0: Success
    - 1: General error
    - 130: Terminated by Ctrl+C (SIGINT)
    
    Application-specific codes:
    - 2: Configuration error
    - 3: Job execution error
    - 4: Storage error (queue or character library files)
    - 5: Network error (executor bridge unreachable)
    - 6: Invalid argument or job payload
    - 7: Not found
    """
    
    SUCCESS = 0
    GENERAL_ERROR = 1
    
    CONFIGURATION_ERROR = 2
    EXECUTION_ERROR = 3
    STORAGE_ERROR = 4
    NETWORK_ERROR = 5
    INVALID_ARGUMENT = 6
    NOT_FOUND = 7
    
    # 128 + SIGINT
    CANCELLED = 130
    
    @classmethod
    def get_name(cls, code: int) -> str:
        """Get the name of an exit code.
        
        Args:
            code: The exit code value
            
        Returns:
            Human-readable name for the exit code
        """
        names = {
            cls.SUCCESS: "SUCCESS",
            cls.GENERAL_ERROR: "GENERAL_ERROR",
            cls.CONFIGURATION_ERROR: "CONFIGURATION_ERROR",
            cls.EXECUTION_ERROR: "EXECUTION_ERROR",
            cls.STORAGE_ERROR: "STORAGE_ERROR",
            cls.NETWORK_ERROR: "NETWORK_ERROR",
            cls.INVALID_ARGUMENT: "INVALID_ARGUMENT",
            cls.NOT_FOUND: "NOT_FOUND",
            cls.CANCELLED: "CANCELLED",
        }
        return names.get(code, f"UNKNOWN({code})")
    
    @classmethod
    def get_description(cls, code: int) -> str:
        """Get the description of an exit code.
        
        Args:
            code: The exit code value
            
        Returns:
            Human-readable description for the exit code
        """
        descriptions = {
            cls.SUCCESS: "Operation completed successfully",
            cls.GENERAL_ERROR: "An unexpected error occurred",
            cls.CONFIGURATION_ERROR: "Invalid delay/cooldown settings or config file",
            cls.EXECUTION_ERROR: "One or more jobs failed to execute",
            cls.STORAGE_ERROR: "Queue or character library file could not be read or written",
            cls.NETWORK_ERROR: "Executor bridge could not be reached",
            cls.INVALID_ARGUMENT: "Invalid command-line argument or job payload",
            cls.NOT_FOUND: "Requested resource not found",
            cls.CANCELLED: "Operation cancelled by user",
        }
        return descriptions.get(code, f"Unknown exit code: {code}")
