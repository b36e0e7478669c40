try:
    from .main import main
except ImportError:  # pragma: no cover - run as a plain script
    from imagemunger.main import main  # type: ignore


if __name__ == "__main__":
    raise SystemExit(main())
