from weefee.cli import main

raise SystemExit(main())
