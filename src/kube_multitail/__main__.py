from kube_multitail.cli import main

main()
