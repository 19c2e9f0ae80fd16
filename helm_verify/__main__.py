"""Run the helm-verify command line tool with `python -m helm_verify`."""

from helm_verify.tool.helm_verify import main

if __name__ == "__main__":
    main()
