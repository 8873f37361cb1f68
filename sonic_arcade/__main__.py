from sonic_arcade.bot import main

main()
