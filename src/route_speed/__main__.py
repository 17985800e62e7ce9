from route_speed.cli import main

main()
