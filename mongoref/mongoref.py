import json
from pathlib import Path
from typing import List, Optional
from typing_extensions import Annotated

import typer
from bson import json_util
from bson.objectid import ObjectId

from mongoref.lib.Reference import Reference
from mongoref.lib.Resolver import resolve
from mongoref.lib.Scanner import Scanner
from mongoref.lib.constants import LOG_LEVEL_ENV_VAR_NAME, REF_FIELD_NAME, console
from mongoref.lib.errors import DBRefError
from mongoref.lib.helpers import (
    open_session,
    init_progress_bar,
    is_reference,
    get_lowercase_key,
)
from mongoref.lib.log import setup_logging

app = typer.Typer(
    help="Builds, checks, and resolves MongoDB database references (DBRefs).",
    add_completion=False,  # hides the shell completion options from `--help` output
    rich_markup_mode="markdown",  # enables use of Markdown in docstrings and CLI help
)

# Options shared by the commands that connect to a MongoDB server.
DatabaseNameOption = Annotated[str, typer.Option(
    help="Name of the database.",
)]
MongoUriOption = Annotated[str, typer.Option(
    envvar="MONGO_URI",
    help="Connection string for accessing the MongoDB server. If you have Docker installed, "
         "you can spin up a temporary MongoDB server at the default URI by running: "
         "`$ docker run --rm --detach -p 27017:27017 mongo`",
)]


def _object_pairs_hook(pairs: list[tuple[str, object]]) -> object:
    r"""
    Decodes a JSON object the way `json_util` does, except that references are left as plain `dict`s (instead of
    being decoded into `DBRef`s, which cannot hold a malformed reference).
    """
    document = dict(pairs)
    if REF_FIELD_NAME in document:
        return document
    return json_util.object_pairs_hook(pairs)


def parse_extended_json(value: str) -> object:
    r"""
    Parses the specified MongoDB Extended JSON string, exiting with an error message if it is not valid.

    Reference: https://pymongo.readthedocs.io/en/stable/api/bson/json_util.html
    """
    try:
        return json.loads(value, object_pairs_hook=_object_pairs_hook)
    except ValueError as error:
        console.print(f"[red]Invalid Extended JSON:[/red] {error}")
        raise typer.Exit(code=2)


@app.callback()
def main(
        log_level: Annotated[Optional[str], typer.Option(
            envvar=LOG_LEVEL_ENV_VAR_NAME,
            help="Log level (e.g. `DEBUG`). Defaults to `INFO`.",
        )] = None,
):
    """
    Builds, checks, and resolves MongoDB database references (DBRefs).
    """
    setup_logging(log_level)


@app.command("create")
def create(
        collection_name: Annotated[str, typer.Argument(
            help="Name of the collection containing the referenced document.",
        )],
        identifier: Annotated[str, typer.Argument(
            help="`_id` of the referenced document. A 24-digit hexadecimal string is treated as an `ObjectId`.",
        )],
        database_name: Annotated[Optional[str], typer.Option(
            "--database",
            help="Name of the database containing the referenced document, if it is a different database "
                 "from the one containing the referring document.",
        )] = None,
        id_json: Annotated[bool, typer.Option(
            help="Parse the identifier as Extended JSON. If it is a document, its `_id` is used.",
        )] = False,
):
    """
    Prints a reference to the specified document, as Extended JSON.
    """
    if id_json:
        identifier_source = parse_extended_json(identifier)
    elif ObjectId.is_valid(identifier):
        identifier_source = ObjectId(identifier)
    else:
        identifier_source = identifier

    try:
        reference = Reference.create(identifier_source, collection_name, database_name)
    except DBRefError as error:
        console.print(f"[red]Cannot create reference:[/red] {error}")
        raise typer.Exit(code=2)

    console.print_json(json_util.dumps(reference.as_doc()))


@app.command("check")
def check(
        value: Annotated[str, typer.Argument(
            help="Value to check, as Extended JSON.",
        )],
):
    """
    Checks whether the specified value is a reference (i.e. has both a `$ref` and an `$id` field).
    """
    if is_reference(parse_extended_json(value)):
        console.print("✅  Is a reference")
    else:
        console.print("❌  Is not a reference")
        raise typer.Exit(code=1)


@app.command("resolve")
def resolve_(
        reference: Annotated[str, typer.Argument(
            help="Reference to resolve, as Extended JSON. "
                 "Example: `'{\"$ref\": \"study_set\", \"$id\": {\"$oid\": \"65f1c2a9e4b0a1b2c3d4e5f6\"}}'`",
        )],
        database_name: DatabaseNameOption = "test",
        mongo_uri: MongoUriOption = "mongodb://localhost:27017",
        verbose: Annotated[bool, typer.Option(
            help="Show verbose output.",
        )] = False,
):
    """
    Prints the document the specified reference refers to.
    """
    value = parse_extended_json(reference)
    if not is_reference(value):
        console.print("[red]Not a reference[/red] (it lacks a `$ref` or an `$id` field)")
        raise typer.Exit(code=2)

    with open_session(mongo_uri, database_name, verbose=verbose) as session:
        try:
            document = resolve(session, value)
        except DBRefError as error:
            console.print(f"[red]Cannot resolve reference:[/red] {error}")
            raise typer.Exit(code=2)

    if document is None:
        console.print("🤷  No such document")
        raise typer.Exit(code=1)

    console.print_json(json_util.dumps(document))


@app.command("scan")
def scan(
        database_name: DatabaseNameOption = "test",
        mongo_uri: MongoUriOption = "mongodb://localhost:27017",
        verbose: Annotated[bool, typer.Option(
            help="Show verbose output.",
        )] = False,
        # Reference: https://typer.tiangolo.com/tutorial/multiple-values/multiple-options/
        collection: Annotated[Optional[List[str]], typer.Option(
            "--collection",
            help="Name of collection you want to search for referring documents. "
                 "Option can be used multiple times. Defaults to all collections in the database.",
        )] = None,
        skip_source_collection: Annotated[Optional[List[str]], typer.Option(
            "--skip-source-collection", "--skip",
            help="Name of collection you do not want to search for referring documents. "
                 "Option can be used multiple times.",
        )] = None,
        reference_report_file_path: Annotated[Optional[Path], typer.Option(
            "--reference-report",
            dir_okay=False,
            writable=True,
            readable=False,
            resolve_path=True,
            help="Filesystem path at which you want the program to generate its reference report.",
        )] = "references.tsv",
        violation_report_file_path: Annotated[Optional[Path], typer.Option(
            "--violation-report",
            dir_okay=False,
            writable=True,
            readable=False,
            resolve_path=True,
            help="Filesystem path at which you want the program to generate its violation report.",
        )] = "violations.tsv",
):
    """
    Scans a MongoDB database for references that do not resolve.
    """
    # Make more self-documenting aliases for the CLI options that can be specified multiple times.
    names_of_source_collections_to_skip: list[str] = [] if skip_source_collection is None else skip_source_collection
    names_of_requested_collections: list[str] = [] if collection is None else collection

    # Initialize a progress bar.
    custom_progress = init_progress_bar()

    # Connect to the MongoDB server and verify the database is accessible.
    with open_session(mongo_uri, database_name) as session:
        db = session.database

        # Determine which collections to scan, and warn about any requested ones the database lacks.
        collection_names_in_db = db.list_collection_names()
        if len(names_of_requested_collections) == 0:
            source_collection_names = collection_names_in_db
        else:
            source_collection_names = []
            for collection_name in names_of_requested_collections:
                if collection_name not in collection_names_in_db:
                    console.print(f"🤷  [dark_orange]Database lacks collection:[/dark_orange] {collection_name}")
                else:
                    source_collection_names.append(collection_name)

        # Make a scanner bound to this session.
        scanner = Scanner(session=session)

        source_collections_and_their_violation_counts: dict[str, int] = {}
        with custom_progress as progress:
            for source_collection_name in sorted(source_collection_names, key=str.lower):

                # If this source collection is one of the ones the user wanted to skip, skip it now.
                if source_collection_name in names_of_source_collections_to_skip:
                    console.print(f"⚠️  [dark_orange][bold]Skipping source collection:[/bold][/dark_orange] "
                                  f"{source_collection_name}")
                    continue

                source_collection = db.get_collection(source_collection_name)

                # Set up the progress bar for the task of scanning the documents in this collection.
                num_documents = source_collection.count_documents({})
                task_id = progress.add_task(f"{source_collection_name}",
                                            total=num_documents,
                                            num_violations=0,
                                            remaining_time_label="remaining")

                # Advance the progress bar by 0 (this makes it so that, even if there are 0 documents, the progress
                # bar does not continue incrementing its "elapsed time" even after a subsequent task has begun).
                progress.update(task_id, advance=0)

                num_violations = 0
                for document in source_collection.find({}):
                    num_violations += scanner.scan_document(source_collection_name, document)
                    progress.update(task_id, advance=1, num_violations=num_violations)

                source_collections_and_their_violation_counts[source_collection_name] = num_violations

                # Update the progress bar to indicate the current task is complete.
                progress.update(task_id, remaining_time_label="done")

    console.print(f"References found: {len(scanner.occurrences)}")

    # Create a reference report in TSV format.
    console.print(f"Writing reference report: {reference_report_file_path}")
    scanner.occurrences.dump_to_tsv_file(file_path=reference_report_file_path)

    # Display a table of references, and the collections referred to by each collection.
    if verbose:
        console.print(scanner.occurrences.as_table())
        for source_collection_name in scanner.occurrences.get_source_collection_names():
            target_collection_names = scanner.occurrences.get_target_collection_names(source_collection_name)
            console.print(f"{source_collection_name} refers to: {', '.join(target_collection_names)}")

    # Create a violation report in TSV format, for all collections combined.
    sorted_violation_counts = sorted(source_collections_and_their_violation_counts.items(), key=get_lowercase_key)
    for collection_name, num_violations in sorted_violation_counts:
        console.print(f"Number of violations in {collection_name}: {num_violations}")
    for reason, num_violations in scanner.violations.count_by_reason().items():
        console.print(f"Violations due to {reason}: {num_violations}")

    console.print(f"Total violations: {len(scanner.violations)}")
    console.print(f"Writing violation report: {violation_report_file_path}")
    scanner.violations.dump_to_tsv_file(file_path=violation_report_file_path)


if __name__ == "__main__":
    app()
