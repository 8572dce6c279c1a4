from pathlib import Path
from dataclasses import fields, astuple
from collections import UserList
from itertools import groupby
from typing import Iterator
import csv

from rich.table import Table, Column

from mongoref.lib.Occurrence import Occurrence


def generalize_field_path(field_path: str) -> str:
    r"""
    Returns the specified field path with each list index replaced by `[]`.

    Example: `"authors.0.affiliation"` -> `"authors.[].affiliation"`
    """
    return ".".join("[]" if segment.isdigit() else segment for segment in field_path.split("."))


class OccurrenceList(UserList):
    """
    A list of occurrences of references.

    Note: `UserList` is a base class that facilitates the implementation of custom list classes.
    """

    def get_source_collection_names(self) -> list[str]:
        """
        Returns the distinct `source_collection_name` values among all occurrences in the list.
        """
        distinct_source_collection_names = []
        for occurrence in self.data:
            if occurrence.source_collection_name not in distinct_source_collection_names:
                distinct_source_collection_names.append(occurrence.source_collection_name)
        return distinct_source_collection_names

    def get_target_collection_names(self, source_collection_name: str) -> list[str]:
        """
        Returns the distinct names of the collections referred to by documents in the specified source collection.
        """
        target_collection_names = []
        for occurrence in self.data:
            if occurrence.source_collection_name == source_collection_name:
                target_collection_names.append(str(occurrence.target_collection_name))
        return sorted(set(target_collection_names))

    def get_groups(self) -> Iterator[tuple[tuple[str, str, str, str], Iterator[Occurrence]]]:
        r"""
        Returns an iterable of groups, where each group consists of the occurrences that have the same source
        collection, (generalized) source field path, target database and target collection.

        Note: This method can be used to "consolidate" occurrences that only differ by which document they are in,
              by which item of a list they are in, or by which document they refer to.
        """

        def make_group_key(occurrence: Occurrence) -> tuple[str, str, str, str]:
            """Helper function that returns a key that can be used to group occurrences."""
            return (occurrence.source_collection_name,
                    generalize_field_path(occurrence.source_field_path),
                    str(occurrence.target_database_name),
                    str(occurrence.target_collection_name))

        groups = groupby(sorted(self.data, key=make_group_key), key=make_group_key)
        return groups

    def dump_to_tsv_file(self, file_path: str | Path) -> None:
        r"""
        Helper function that dumps the occurrences to a TSV file at the specified path.
        """
        column_names = [field_.name for field_ in fields(Occurrence)]
        with open(file_path, "w", newline="") as tsv_file:
            writer = csv.writer(tsv_file, delimiter="\t")
            writer.writerow(column_names)  # header row
            for occurrence in self.data:
                writer.writerow(astuple(occurrence))  # data row

    def as_table(self) -> Table:
        r"""
        Returns the occurrences as a `rich.Table` instance, with one row per group of occurrences.
        """
        data_rows: list[tuple[str, str, str, str, str]] = []
        for key, group in self.get_groups():
            row = (key[0], key[1], key[2] or "(same)", key[3], str(len(list(group))))
            data_rows.append(row)

        # Initialize the table, then add the data rows to it.
        table = Table(Column(header="Source collection", footer=f"{len(data_rows)} rows"),
                      Column(header="Source field"),
                      Column(header="Target database"),
                      Column(header="Target collection"),
                      Column(header="Occurrences", justify="right"),
                      title="References",
                      show_footer=True)
        for row in data_rows:
            table.add_row(*row)

        return table
