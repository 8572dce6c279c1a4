from pathlib import Path
from dataclasses import fields, astuple
from collections import UserList, Counter
import csv

from mongoref.lib.Violation import Violation


class ViolationList(UserList):
    """
    A list of violations.
    """

    def count_by_reason(self) -> dict[str, int]:
        """
        Returns a dictionary that maps each reason for which any violations occurred, to the number of them.

        Example: {"missing target": 3, "InvalidRefTypeError (code 10)": 1}
        """
        return dict(Counter(violation.reason for violation in self.data))

    def dump_to_tsv_file(self, file_path: str | Path) -> None:
        """
        Helper function that dumps the violations to a TSV file at the specified path.
        """
        column_names = [field_.name for field_ in fields(Violation)]
        with open(file_path, "w", newline="") as tsv_file:
            writer = csv.writer(tsv_file, delimiter="\t")
            writer.writerow(column_names)  # header row
            for violation in self.data:
                writer.writerow(astuple(violation))  # data row
