from watchtrack.app import main

raise SystemExit(main())
