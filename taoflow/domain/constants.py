from pathlib import Path

# Configuration files
CONFIG_DIRNAME = ".taoflow"
CONFIG_FILENAME = "config.yml"
CONFIG_RELPATH = Path(CONFIG_DIRNAME) / CONFIG_FILENAME

# Engine defaults
DEFAULT_ITERATION_CAP = 5
DEFAULT_MAX_CONCURRENT_WORKFLOWS = 5
DEFAULT_STATE_RETENTION_SECONDS = 60.0

# Approval defaults
DEFAULT_APPROVAL_TIMEOUT_MS = 30000
DEFAULT_APPROVAL_RETENTION_SECONDS = 60.0
DEFAULT_DETAILS_RESHOW_DELAY_SECONDS = 0.5

# Proposed action type used by the engine's approval checkpoint
WORKFLOW_EXECUTION_ACTION = "workflow_execution"

# Feedback and error texts
CANCELLED_MESSAGE = "Cancelled by user"
DENIED_MESSAGE = "Action denied by user"
