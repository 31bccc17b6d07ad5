"""Entry point: oneshot."""

import sys


def main():
    mode = "oneshot"
    if len(sys.argv) > 1:
        mode = sys.argv[1].lower()

    if mode == "oneshot":
        from nlweb.interfaces.oneshot import main as run_oneshot_main

        args = sys.argv[2:]
        site = None
        if "--site" in args:
            i = args.index("--site")
            if i + 1 >= len(args):
                print("Error: --site requires a value")
                sys.exit(2)
            site = args[i + 1]
            args = args[:i] + args[i + 2 :]
        if args:
            query = " ".join(args).strip()
        else:
            query = sys.stdin.read().strip()
        sys.exit(run_oneshot_main(query=query, site=site))

    else:
        print(f"Unknown mode: {mode}")
        print("Usage: python -m nlweb.main oneshot [--site SITE] <query>")
        sys.exit(1)


if __name__ == "__main__":
    main()
