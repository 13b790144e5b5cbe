from deployer.main import main

main()
