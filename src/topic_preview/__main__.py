from topic_preview.main import main

raise SystemExit(main())
