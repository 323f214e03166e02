## CLI entry point for remote Tomcat provisioning

from Remote.run_remote_workflow import main


if __name__ == "__main__":
    raise SystemExit(main())
