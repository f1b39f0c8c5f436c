from planner.cli import PlannerCLI
from planner.config import configure_logging, load_settings


def main():
    settings = load_settings()
    configure_logging(settings)
    PlannerCLI(settings).cmdloop()


if __name__ == "__main__":
    main()
