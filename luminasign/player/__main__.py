from luminasign.player.runner import main

main()
