DESCRIPTION_PROPERTY = "description"

RECIPE_SUFFIX = ".fiz"

MAX_SOURCE_LENGTH = 200_000

# Separator for the registry key of a qualified style tag path, e.g. "a.b"
TAG_PATH_SEPARATOR = "."

# Deepest allowed nesting of calls and namespaces in one recipe
MAX_NESTING_DEPTH = 100
