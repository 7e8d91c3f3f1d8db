from meadowlark.app import main

main()
