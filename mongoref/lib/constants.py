from rich.console import Console

# Names of the fields of a database reference, in the order in which they appear in one.
REF_FIELD_NAME = "$ref"
ID_FIELD_NAME = "$id"
DB_FIELD_NAME = "$db"

# Name of the field containing a document's primary key.
PRIMARY_KEY_FIELD_NAME = "_id"

# Name of the environment variable that can be used to set the log level.
LOG_LEVEL_ENV_VAR_NAME = "MONGOREF_LOG_LEVEL"

console = Console()
