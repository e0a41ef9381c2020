from tabulate import tabulate

from cipherlog.logger import LogLevel

HEADERS = ["#", "Level", "Category", "Timestamp", "Message"]


def _split_header(header):
    parts = header.split(" ")
    if len(parts) >= 3 and parts[0] in LogLevel.__members__:
        return parts[0], " ".join(parts[1:-1]), parts[-1]
    return None


def entry_rows(entries):
    rows = []
    for i, entry in enumerate(entries, start=1):
        header, _, body = entry.partition("\n")
        fields = _split_header(header)
        if fields is None:
            rows.append([i, "", "", "", header])
            continue
        level, category, timestamp = fields
        first_line = body.split("\n", 1)[0]
        rows.append([i, level, category, timestamp, first_line])
    return rows


def render_entries(entries, tablefmt="grid"):
    rows = entry_rows(entries)
    if not rows:
        return "No entries found in the log file."
    return tabulate(rows, headers=HEADERS, tablefmt=tablefmt)
