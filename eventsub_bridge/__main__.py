from eventsub_bridge.main import main

main()
