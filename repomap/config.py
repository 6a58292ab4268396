"""Global configuration: names, keys, and environment variables."""

# Name of the repository metadata directory (or git file) in a work tree
DOT_GIT = ".git"

# Suffix marking a persisted mapping key: "<containerPath>.gitdir"
GITDIR_KEY_SUFFIX = ".gitdir"

# Private per-project working area and the property file stored in it
STATE_AREA = "repomap.core"
STATE_FILE_NAME = "GitProjectData.properties"
STATE_FILE_COMMENT = "GitProjectData"

# Temporary file naming used while storing the property file
STATE_TMP_PREFIX = "gpd_"
STATE_TMP_SUFFIX = ".prop"

# Environment variables
CEILING_DIRECTORIES_ENV = "GIT_CEILING_DIRECTORIES"
FIND_IN_CHILDREN_ENV = "REPOMAP_FIND_IN_CHILDREN"
INCLUDE_LINKED_ENV = "REPOMAP_INCLUDE_LINKED"

# Entries a directory must hold to be treated as a repository directory
REPOSITORY_DIRS = ("objects", "refs")
REPOSITORY_FILES = ("HEAD", "config")

# Prefix of the single line held by a git file (submodules, linked work trees)
GITDIR_FILE_PREFIX = "gitdir:"
