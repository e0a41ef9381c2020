#!/usr/bin/env python3
import argparse
import logging
import sys

from cipherlog.log_store import EncryptedLogStore
from cipherlog.logger import Logger, LoggerConfig, LogLevel, LogMode
from cipherlog.string_cipher import StringCipherError, decrypt, encrypt
from cipherlog.viewer import render_entries


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
    )


def _read_stdin_if_missing(value):
    if value is not None:
        return value
    return sys.stdin.read()


def build_parser():
    parser = argparse.ArgumentParser(prog="cipherlog", description="Password-based string cipher and encrypted log tool")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="cmd")

    p_enc = sub.add_parser("encrypt", help="Encrypt text into an envelope")
    p_enc.add_argument("--password", required=True, help="Password to derive the key (may be empty)")
    p_enc.add_argument("--text", help="Plaintext; read from stdin when omitted")

    p_dec = sub.add_parser("decrypt", help="Decrypt an envelope")
    p_dec.add_argument("--password", required=True, help="Password used at encryption")
    p_dec.add_argument("--envelope", help="Envelope; read from stdin when omitted")

    p_log = sub.add_parser("log", help="Append one entry to a log file")
    p_log.add_argument("--file", required=True, help="Log file path")
    p_log.add_argument("--password", help="Encrypt the entry with this password")
    p_log.add_argument("--level", default="info", choices=[l.name.lower() for l in LogLevel])
    p_log.add_argument("--category", default="", help="Entry category")
    p_log.add_argument("message", help="Entry message")

    p_dlog = sub.add_parser("decrypt-log", help="Decrypt a log file into a plaintext file")
    p_dlog.add_argument("--file", required=True, help="Encrypted log file path")
    p_dlog.add_argument("--password", required=True, help="Password of the log file")
    p_dlog.add_argument("--out", required=True, help="Destination file")
    p_dlog.add_argument("--separator", default="\n\n", help="Separator written after each entry")
    p_dlog.add_argument("--skip-invalid", action="store_true", help="Skip entries that fail to decrypt")

    p_entries = sub.add_parser("entries", help="List log entries as a table")
    p_entries.add_argument("--file", required=True, help="Log file path")
    p_entries.add_argument("--password", help="Password of the log file")
    p_entries.add_argument("--skip-invalid", action="store_true", help="Skip entries that fail to decrypt")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        if args.cmd == "encrypt":
            print(encrypt(_read_stdin_if_missing(args.text), args.password))
        elif args.cmd == "decrypt":
            print(decrypt(_read_stdin_if_missing(args.envelope).strip(), args.password))
        elif args.cmd == "log":
            level = LogLevel[args.level.upper()]
            config = LoggerConfig(
                levels={level},
                modes={LogMode.FILE},
                file_path=args.file,
                encryption_password=args.password,
            )
            Logger(config).emit(level, args.message, args.category)
            print("[+] Logged to", args.file)
        elif args.cmd == "decrypt-log":
            store = EncryptedLogStore(args.file, password=args.password)
            count = store.decrypt_to(args.out, entry_separator=args.separator, skip_invalid=args.skip_invalid)
            print(f"[+] Wrote {count} entries to {args.out}")
        elif args.cmd == "entries":
            store = EncryptedLogStore(args.file, password=args.password)
            print(render_entries(store.read_entries(skip_invalid=args.skip_invalid)))
        else:
            parser.print_help()
    except StringCipherError as e:
        print("[!] Decryption failed:", e)
        return 1
    except OSError as e:
        print("[!]", e)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
