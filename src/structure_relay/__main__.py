from structure_relay.core.cli import main

if __name__ == "__main__":
    main()
