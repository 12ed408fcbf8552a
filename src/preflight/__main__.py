from preflight.cli.main import main

raise SystemExit(main())
